"""API layer — FastAPI dependency injection.

The Engine is built once at startup and stored on ``app.state``.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from syndes_engine.config import Settings
from syndes_engine.engine import Engine


def get_engine(request: Request) -> Engine:
    return request.app.state.engine  # type: ignore[no-any-return]


def get_config(request: Request) -> Settings:
    return request.app.state.settings  # type: ignore[no-any-return]


EngineDep = Annotated[Engine, Depends(get_engine)]
ConfigDep = Annotated[Settings, Depends(get_config)]
