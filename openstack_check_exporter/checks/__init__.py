"""Cloud checks. Each class is its own factory: ``Check(cloud_config, options)``."""

from .cinder import CinderServices
from .glance import GlanceListImages, GlanceShowImage
from .horizon import HorizonLogin
from .neutron import NeutronFloatingIP, NeutronListNetworks
from .nova import NovaCreateInstance, NovaListFlavors, NovaServices

DEFAULT_CHECKS = [
    GlanceListImages,
    GlanceShowImage,
    CinderServices,
    NeutronListNetworks,
    NovaListFlavors,
    NeutronFloatingIP,
    NovaCreateInstance,
    NovaServices,
    HorizonLogin,
]
