"""The generation capability consumed by the orchestrator."""

import logging
from typing import Callable, Iterable, Optional, Protocol, runtime_checkable

from agents.bibliography_agent import BibliographyAgent
from agents.chapter_writer_agent import ChapterWriterAgent
from agents.cover_agent import CoverArtistAgent
from config.exceptions import ProviderAuthError
from config.settings import Settings
from models.bibliography import BibliographyReference
from models.chapter import GeneratedChapter
from models.configuration import BibliographyGenerationConfig, BookConfiguration
from models.outline import BookOutline
from tools.agent_sdk_client import AgentSDKClient
from tools.context_builder import ChapterLike
from tools.image_client import ImageClient

logger = logging.getLogger(__name__)


@runtime_checkable
class GenerationProvider(Protocol):
    """Black-box text and image generation.

    Implementations raise LLMError subclasses on failure.
    """

    def ensure_ready(self) -> None:
        """Raise ProviderAuthError when no credentials are available."""
        ...

    async def generate_chapter(
        self,
        outline: BookOutline,
        chapter_number: int,
        context: str,
        model: str,
        bibliography: Optional[BibliographyGenerationConfig] = None,
        config: Optional[BookConfiguration] = None,
    ) -> GeneratedChapter:
        ...

    async def generate_chapter_batch(
        self,
        outline: BookOutline,
        chapter_numbers: list[int],
        context: str,
        model: str,
        bibliography: Optional[BibliographyGenerationConfig] = None,
        on_chapter_done: Optional[Callable[[int, GeneratedChapter], None]] = None,
        config: Optional[BookConfiguration] = None,
    ) -> list[GeneratedChapter]:
        ...

    def build_chapter_context(self, chapters: Iterable[ChapterLike]) -> str:
        ...

    async def generate_cover_image(
        self, title: str, author: str, genre: str, description: str, style: str,
    ) -> str:
        ...

    async def generate_back_cover_image(
        self,
        title: str,
        author: str,
        genre: str,
        description: str,
        style: str,
        model: Optional[str] = None,
        branding: Optional[dict] = None,
    ) -> str:
        ...

    async def generate_bibliography_references(
        self,
        book_id: int,
        outline: BookOutline,
        chapter_contents: list[str],
        config: BibliographyGenerationConfig,
        model: Optional[str] = None,
    ) -> list[BibliographyReference]:
        ...


class AgentGenerationProvider:
    """GenerationProvider backed by the Agent SDK and an images endpoint."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        llm_client: Optional[AgentSDKClient] = None,
        image_client: Optional[ImageClient] = None,
    ):
        self.settings = settings or Settings()
        self.llm = llm_client or AgentSDKClient(self.settings)
        self.writer = ChapterWriterAgent(self.llm, self.settings)
        self.covers = CoverArtistAgent(image_client, self.llm, self.settings)
        self.bibliography = BibliographyAgent(self.llm, self.settings)

    def ensure_ready(self) -> None:
        if not self.llm.has_credentials():
            raise ProviderAuthError(
                "No provider credentials: set ANTHROPIC_API_KEY or enable ALLOW_CLI_AUTH"
            )

    async def generate_chapter(self, outline, chapter_number, context, model, bibliography=None, config=None):
        return await self.writer.generate_chapter(outline, chapter_number, context, model, bibliography, config)

    async def generate_chapter_batch(
        self, outline, chapter_numbers, context, model, bibliography=None, on_chapter_done=None, config=None,
    ):
        return await self.writer.generate_chapter_batch(
            outline, chapter_numbers, context, model, bibliography, on_chapter_done, config,
        )

    def build_chapter_context(self, chapters):
        return self.writer.build_chapter_context(chapters)

    async def generate_cover_image(self, title, author, genre, description, style):
        return await self.covers.generate_cover_image(title, author, genre, description, style)

    async def generate_back_cover_image(
        self, title, author, genre, description, style, model=None, branding=None,
    ):
        return await self.covers.generate_back_cover_image(
            title, author, genre, description, style, model, branding,
        )

    async def generate_bibliography_references(self, book_id, outline, chapter_contents, config, model=None):
        return await self.bibliography.generate_references(book_id, outline, chapter_contents, config, model)
