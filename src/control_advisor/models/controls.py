"""Control models consumed by the suggestion pipeline."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Part names that carry the normative control text in OSCAL catalogs
STATEMENT_PART_NAMES = ("statement", "objective", "item")


class DescriptionPart(BaseModel):
    """One named prose fragment of a control description."""
    model_config = ConfigDict(frozen=True)

    name: str = ""
    prose: str = ""
    title: str = ""


class Control(BaseModel):
    """A single compliance requirement awaiting implementation metadata.

    Accepts both snake_case and the camelCase keys used by the HTTP layer.
    """
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str = ""
    title: str = ""
    description: str = ""
    parts: list[DescriptionPart] = Field(default_factory=list)
    status: Optional[str] = None
    implementation: Optional[str] = None
    responsible_party: Optional[str] = None
    control_type: Optional[str] = None
    testing_method: Optional[str] = None
    testing_frequency: Optional[str] = None
    risk_rating: Optional[str] = None

    @property
    def family(self) -> str:
        """Control family code, e.g. ``AC`` for ``ac-2``."""
        if not self.id:
            return ""
        return self.id.split("-")[0].upper()

    @property
    def clean_title(self) -> str:
        """Title with a leading ``Control:`` label removed."""
        title = (self.title or "").strip()
        if title.lower().startswith("control:"):
            title = title[len("control:"):].strip()
        return title

    def description_text(self, separator: str = " ") -> str:
        """Join the prose of the statement-like parts, else of all parts.

        Falls back to the plain ``description`` field when no part has text.
        """
        if self.parts:
            statement_parts = [p for p in self.parts if p.name in STATEMENT_PART_NAMES]
            parts_to_use = statement_parts or self.parts
            texts = [p.prose or p.title for p in parts_to_use]
            joined = separator.join(t for t in texts if t)
            if joined:
                return joined
        return self.description or ""

    def search_text(self) -> str:
        """Lower-cased title + description used by keyword strategies."""
        return f"{self.clean_title} {self.description_text()}".lower()


class ExistingControl(Control):
    """A previously documented control used as reference data.

    Only entries with both an id and an implementation take part in learning.
    """

    @property
    def is_documented(self) -> bool:
        return bool(self.id and self.implementation)
