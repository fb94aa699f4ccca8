"""Response envelopes shared by the API routers."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel


class CreatedResponse(BaseModel):
	id: str


class StatusResponse(BaseModel):
	status: Literal["ok"] = "ok"
