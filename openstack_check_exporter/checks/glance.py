"""Image service (glance) checks."""

from __future__ import annotations

import json
from typing import TextIO
from urllib.parse import quote

from ..checker.auth import Session
from ..checker.context import Context
from ..checker.errors import ApiError
from ..checker.options import CloudOptions
from .base import BaseCheck

SERVICE = "image"


def list_images(ctx: Context, session: Session, region: str, query: str = "") -> list[dict]:
    """All images visible to the project, following glance's ``next`` links."""
    images: list[dict] = []
    path: str | None = f"/v2/images{query}"
    while path:
        page = session.get_json(ctx, SERVICE, path, region=region)
        images.extend(page.get("images", []))
        path = page.get("next")
    return images


class GlanceListImages(BaseCheck):
    """Lists the images in glance."""

    name = "glance_list_images"

    def check(self, ctx: Context, session: Session, region: str, output: TextIO) -> None:
        for image in list_images(ctx, session, region):
            print(image.get("name"), file=output)


class GlanceShowImage(BaseCheck):
    """Ensures an image (given by ID or name) can be found in glance."""

    name = "glance_show_image"

    def __init__(self, cloud_config, options: CloudOptions) -> None:
        super().__init__(cloud_config, options)
        self.image = self.options.get_str(self.name, "image", "cirros")

    def check(self, ctx: Context, session: Session, region: str, output: TextIO) -> None:
        try:
            image = session.get_json(ctx, SERVICE, f"/v2/images/{quote(self.image)}", region=region)
        except ApiError as e:
            # not an ID, try it as a name
            if e.status_code != 404:
                raise
        else:
            print(json.dumps(image, indent=2), file=output)
            return

        for image in list_images(ctx, session, region, query=f"?name={quote(self.image)}"):
            print(image.get("name"), file=output)
