"""Shared base for the provider-facing agents: settings, client and prompts.

Each agent names one markdown template under config/prompts/. A template is a
set of '## ' sections, each a str.format() string rendered with `_render`.
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from config.settings import Settings
from tools.agent_sdk_client import AgentSDKClient

logger = logging.getLogger(__name__)

_PROMPTS_DIR = Path(__file__).parent.parent / "config" / "prompts"


@lru_cache(maxsize=32)
def _read_prompt_file(path: str) -> str:
    return Path(path).read_text(encoding="utf-8")


def split_sections(template: str) -> dict[str, str]:
    """Map each '## ' header of a template to its stripped body.

    Text before the first header is dropped. A repeated header keeps the
    last body.
    """
    sections: dict[str, str] = {}
    header = None
    body: list[str] = []
    for line in template.splitlines():
        stripped = line.strip()
        if stripped.startswith("## "):
            if header is not None:
                sections[header] = "\n".join(body).strip()
            header, body = stripped[3:].strip(), []
        elif header is not None:
            body.append(line)
    if header is not None:
        sections[header] = "\n".join(body).strip()
    return sections


class BaseAgent:
    """Base class for the chapter, cover and bibliography agents."""

    template_name: Optional[str] = None

    def __init__(
        self,
        llm_client: Optional[AgentSDKClient] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or Settings()
        self.llm = llm_client or AgentSDKClient(self.settings)
        self._sections: dict[str, str] = {}
        if self.template_name:
            self._sections = split_sections(self._load_prompt(self.template_name))
            logger.debug("Loaded %s.md: %s", self.template_name, ", ".join(self._sections))

    def _load_prompt(self, template_name: str) -> str:
        """Read config/prompts/<template_name>.md (cached after first read).

        Raises:
            FileNotFoundError: No such template.
        """
        path = _PROMPTS_DIR / f"{template_name}.md"
        if not path.exists():
            raise FileNotFoundError(f"Prompt template not found: {path}")
        return _read_prompt_file(str(path))

    def _section(self, header: str) -> str:
        """Raw body of one section; KeyError when the template lacks it."""
        text = self._sections.get(header)
        if not text:
            raise KeyError(f"Section '{header}' missing from {self.template_name}.md")
        return text

    def _render(self, header: str, **values) -> str:
        """Section body with `values` substituted."""
        return self._section(header).format(**values)
