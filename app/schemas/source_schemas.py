"""Pydantic schemas for raw plant source records.

A raw record is one parsed CSV row or one feed object. The fields the
pipeline reads are typed; the original attributes are kept alongside
(``columns`` for CSV rows, ``extra_fields`` for feed objects) so they can
still be displayed later.
"""

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field


class TabularPlantRecord(BaseModel):
    source_kind: Literal["tabular"] = "tabular"
    row_number: int
    name: Optional[str] = None
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    capacity: Optional[str] = None
    energy_source: Optional[str] = None
    country: Optional[str] = None
    columns: dict[str, str] = Field(default_factory=dict)  # every header -> value

    def original_fields(self) -> dict[str, str]:
        return dict(self.columns)


class FeedPlantRecord(BaseModel):
    source_kind: Literal["feed"] = "feed"
    plant_id: Optional[str] = Field(default=None, alias="plantid")
    generator_id: Optional[str] = Field(default=None, alias="generatorid")
    plant_name: Optional[str] = Field(default=None, alias="plantName")
    latitude: Optional[Any] = None
    longitude: Optional[Any] = None
    nameplate_capacity: Optional[Any] = Field(default=None, alias="nameplate-capacity-mw")
    net_summer_capacity: Optional[Any] = Field(default=None, alias="net-summer-capacity-mw")
    net_winter_capacity: Optional[Any] = Field(default=None, alias="net-winter-capacity-mw")
    energy_source: Optional[str] = Field(default=None, alias="energy-source-desc")
    extra_fields: dict[str, Any] = Field(default_factory=dict)

    class Config:
        populate_by_name = True

    @classmethod
    def from_item(cls, item: dict) -> "FeedPlantRecord":
        """Build from a raw feed object; unknown keys go to extra_fields."""
        known = {
            f.alias or name for name, f in cls.model_fields.items()
            if name not in ("source_kind", "extra_fields")
        }
        typed = {k: v for k, v in item.items() if k in known}
        for key in ("plantid", "generatorid", "plantName", "energy-source-desc"):
            if typed.get(key) is not None:
                typed[key] = str(typed[key])
        extras = {k: v for k, v in item.items() if k not in known}
        return cls(**typed, extra_fields=extras)

    def original_fields(self) -> dict[str, Any]:
        fields = self.model_dump(
            by_alias=True, exclude={"source_kind", "extra_fields"}, exclude_none=True,
        )
        fields.update(self.extra_fields)
        return fields


RawSourceRecord = Annotated[
    Union[TabularPlantRecord, FeedPlantRecord],
    Field(discriminator="source_kind"),
]
