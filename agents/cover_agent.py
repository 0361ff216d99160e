"""Cover Artist Agent: front and back cover images."""

import logging
from typing import Optional

from agents.base_agent import BaseAgent
from config.settings import Settings
from tools.agent_sdk_client import AgentSDKClient
from tools.image_client import ImageClient

logger = logging.getLogger(__name__)

_DESCRIPTION_CHARS = 200


class CoverArtistAgent(BaseAgent):
    """Builds cover prompts and hands them to the image client."""

    template_name = "cover_artist"

    def __init__(
        self,
        image_client: Optional[ImageClient] = None,
        llm_client: Optional[AgentSDKClient] = None,
        settings: Optional[Settings] = None,
    ):
        super().__init__(llm_client, settings)
        self.images = image_client or ImageClient(self.settings)

    async def generate_cover_image(
        self,
        title: str,
        author: str,
        genre: str,
        description: str,
        style: str,
    ) -> str:
        prompt = self._render("Front Cover Prompt",
            title=title,
            author=author or "Anonymous",
            genre=genre or "general",
            description=(description or "")[:_DESCRIPTION_CHARS],
            style=style,
        )
        url = await self.images.generate(prompt, style, name_hint=f"{title}-front")
        logger.info("Front cover generated for '%s'", title)
        return url

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
        """Generate the back cover.

        `branding` may set show_branding / show_tagline; both default to off.
        """
        branding = branding or {}
        if branding.get("show_branding") or branding.get("show_tagline"):
            branding_note = f"Leave room for the author name {author}."
        else:
            branding_note = "No text, logos or taglines."
        prompt = self._render("Back Cover Prompt",
            title=title,
            genre=genre or "general",
            description=(description or "")[:_DESCRIPTION_CHARS],
            style=style,
            branding=branding_note,
        )
        url = await self.images.generate(prompt, style, name_hint=f"{title}-back", model=model)
        logger.info("Back cover generated for '%s'", title)
        return url
