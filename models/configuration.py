"""Book configuration input model.

Every optional setting the orchestrator reads is enumerated here with its
default; unknown keys sent by clients are ignored.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models.enums import (
    CitationStyle,
    GenerationSpeed,
    ReferenceFormat,
    SourceVerification,
)


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


class WritingStyleSettings(_CamelModel):
    style: str = "conversational"
    tone: str = "neutral"
    pov: str = "third-person-limited"
    tense: str = "past"


class AudienceSettings(_CamelModel):
    target_audience: str = "adult"
    reading_level: str = "college"


class BibliographySettings(_CamelModel):
    include: bool = False
    citation_style: CitationStyle = CitationStyle.APA
    reference_format: ReferenceFormat = ReferenceFormat.BIBLIOGRAPHY
    source_verification: SourceVerification = SourceVerification.MODERATE


class AISettings(_CamelModel):
    model: Optional[str] = None
    chapter_model: Optional[str] = None
    image_model: Optional[str] = None


class BookConfiguration(_CamelModel):
    writing_style: WritingStyleSettings = Field(default_factory=WritingStyleSettings)
    audience: AudienceSettings = Field(default_factory=AudienceSettings)
    bibliography: BibliographySettings = Field(default_factory=BibliographySettings)
    ai_settings: AISettings = Field(default_factory=AISettings)
    generation_speed: Optional[GenerationSpeed] = None
    use_parallel: bool = True


class BibliographyGenerationConfig(_CamelModel):
    """What the provider needs to weave citations into a chapter."""
    citation_style: CitationStyle = CitationStyle.APA
    reference_format: ReferenceFormat = ReferenceFormat.BIBLIOGRAPHY
    source_verification: SourceVerification = SourceVerification.MODERATE

    @classmethod
    def from_configuration(cls, config: BookConfiguration) -> Optional["BibliographyGenerationConfig"]:
        """Return a generation config when the bibliography is enabled, else None."""
        bib = config.bibliography
        if not bib.include:
            return None
        return cls(
            citation_style=bib.citation_style,
            reference_format=bib.reference_format,
            source_verification=bib.source_verification,
        )
