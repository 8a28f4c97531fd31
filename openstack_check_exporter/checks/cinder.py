"""Block storage (cinder) checks."""

from __future__ import annotations

from typing import TextIO

from ..checker.auth import Session
from ..checker.context import Context
from .base import BaseCheck, check_services


class CinderServices(BaseCheck):
    """Lists cinder services and checks that every enabled one is up."""

    name = "cinder_check_services"
    service_type = "volumev3"

    def check(self, ctx: Context, session: Session, region: str, output: TextIO) -> None:
        check_services(ctx, session, self.service_type, region, output, label="cinder")
