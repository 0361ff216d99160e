"""Agents package: provider-facing agents and the generation provider."""

from agents.base_agent import BaseAgent
from agents.chapter_writer_agent import ChapterWriterAgent
from agents.cover_agent import CoverArtistAgent
from agents.bibliography_agent import BibliographyAgent
from agents.provider import GenerationProvider, AgentGenerationProvider

__all__ = [
    "BaseAgent",
    "ChapterWriterAgent",
    "CoverArtistAgent",
    "BibliographyAgent",
    "GenerationProvider",
    "AgentGenerationProvider",
]
