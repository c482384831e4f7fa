# Copyright (c) Syntropy Systems
"""Shared Pydantic model helpers for reachmatrix."""

from __future__ import annotations

from typing import ClassVar

from pydantic import BaseModel, ConfigDict


class ReachBaseModel(BaseModel):
    """Base model with shared config for reachmatrix records."""

    model_config: ClassVar[ConfigDict] = ConfigDict(
        extra="ignore",
        populate_by_name=True,
    )
