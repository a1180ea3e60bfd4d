"""Routers package."""

from . import (
    health,
    auth,
    apps,
    share_links,
    public_share,
    tasks,
)
