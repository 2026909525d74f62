"""
API surfaces.

The same routers are mounted twice: the default surface under ``/api`` and
the mobile surface under ``/api/v2``. Handlers that behave differently per
surface declare a dependency on ``get_api_surface``.
"""
from enum import Enum

from fastapi import Request


class ApiSurface(str, Enum):
    default = "default"
    v2 = "v2"

    @property
    def prefix(self) -> str:
        return SURFACE_PREFIXES[self]


SURFACE_PREFIXES = {
    ApiSurface.default: "/api",
    ApiSurface.v2: "/api/v2",
}


def surface_for_path(route_path: str) -> ApiSurface:
    """Map a mounted route path (e.g. ``/api/v2/bookings``) to its surface."""
    v2_prefix = SURFACE_PREFIXES[ApiSurface.v2]
    if route_path == v2_prefix or route_path.startswith(v2_prefix + "/"):
        return ApiSurface.v2
    return ApiSurface.default


async def get_api_surface(request: Request) -> ApiSurface:
    # The matched route's template reflects the mount point, not the client URL
    route = request.scope.get("route")
    route_path = getattr(route, "path", request.url.path)
    return surface_for_path(route_path)
