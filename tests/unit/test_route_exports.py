"""The web routes package imports cleanly and exports what it lists."""

from __future__ import annotations

import collybrix.web.routes as routes
from collybrix.web.routes.health import Liveness, Readiness


def test_every_listed_name_is_exported() -> None:
    missing = [name for name in routes.__all__ if not hasattr(routes, name)]
    assert missing == []


def test_health_models_exported() -> None:
    assert routes.Liveness is Liveness
    assert routes.Readiness is Readiness
    assert Readiness(status="ok", database="connected").model_dump() == {
        "status": "ok",
        "database": "connected",
    }


def test_router_factories_build() -> None:
    factories = [name for name in routes.__all__ if name.startswith("create_")]
    assert len(factories) == 12
    for name in factories:
        assert getattr(routes, name)().routes
