from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

PrecaseStatus = Literal["active", "inactive"]


class PrecaseWeapon(BaseModel):
    id: Optional[str] = None
    weapon_id: int = 0
    name: str


class PrecaseRef(BaseModel):
    id: Optional[str] = None
    name: str


class PrecaseRarity(BaseModel):
    id: Optional[str] = None
    name: str
    color: str = "#b0c3d9"


class PrecaseCreateBody(BaseModel):
    skinId: Optional[str] = None
    name: str = Field(min_length=1)
    description: str = ""
    image: str = Field(min_length=1)
    weapon: PrecaseWeapon
    category: PrecaseRef
    pattern: PrecaseRef
    min_float: Optional[float] = None
    max_float: Optional[float] = None
    rarity: PrecaseRarity
    paint_index: Optional[str] = None
    probability: float = 0
    price: float = 0
    status: PrecaseStatus = "active"
    stattrak: bool = False
    souvenir: bool = False


class PrecaseEditBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    skinId: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    weapon: Optional[PrecaseWeapon] = None
    category: Optional[PrecaseRef] = None
    pattern: Optional[PrecaseRef] = None
    min_float: Optional[float] = None
    max_float: Optional[float] = None
    rarity: Optional[PrecaseRarity] = None
    stattrak: Optional[bool] = None
    souvenir: Optional[bool] = None
    paint_index: Optional[str] = None
    probability: Optional[float] = None
    price: Optional[float] = None
    status: Optional[PrecaseStatus] = None


class PrecaseToggleBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    status: PrecaseStatus
