from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, Field, field_validator

from .rules import DEFAULT_RELEASE, DEFAULT_TYPE


class CharacterBase(BaseModel):
    record: str = Field(default="", examples=["1/2/1"])
    name: str
    image: str = ""
    pimage: str = ""
    type: str = Field(default=DEFAULT_TYPE, examples=["S-Rank"])
    release: str = Field(default=DEFAULT_RELEASE, examples=["Fire"])
    str_init: float = 0
    agi_init: float = 0
    sta_init: float = 0
    str_mul_in: float = 0
    agi_mul_in: float = 0
    sta_mul_in: float = 0
    bmv_str: float = 0
    bmv_agi: float = 0
    bmv_sta: float = 0
    chinese: bool = False

    @field_validator("name")
    @classmethod
    def name_present(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("name must not be empty")
        return value


class NewCharacter(CharacterBase):
    """A record that has not been persisted yet (no id)."""


class Character(CharacterBase):
    id: str
    created_at: Optional[datetime] = None


class ExtractedStats(BaseModel):
    """Best-effort guesses from the AI service. Every field may be missing."""

    record: Optional[str] = None
    name: Optional[str] = None
    type: Optional[str] = None
    release: Optional[str] = None
    str_init: Optional[float] = None
    agi_init: Optional[float] = None
    sta_init: Optional[float] = None
    str_mul_in: Optional[float] = None
    agi_mul_in: Optional[float] = None
    sta_mul_in: Optional[float] = None
    bmv_str: Optional[float] = None
    bmv_agi: Optional[float] = None
    bmv_sta: Optional[float] = None
    chinese: Optional[bool] = None


class CharacterList(BaseModel):
    items: List[Character] = Field(default_factory=list)
    total: int = 0
    counts: Dict[str, int] = Field(default_factory=dict)


class ImportResponse(BaseModel):
    imported: int
    items: List[Character] = Field(default_factory=list)
    encoding: Optional[str] = None


class IdsRequest(BaseModel):
    ids: List[str] = Field(default_factory=list)


class CodegenRequest(BaseModel):
    ids: Optional[List[str]] = None


class CodegenResponse(BaseModel):
    count: int
    code: str


class GenerateRequest(BaseModel):
    name: str
    description: str = ""


class HealthResponse(BaseModel):
    ok: bool = True
    store: Optional[str] = None
    store_available: bool = False
    extraction_available: bool = False
