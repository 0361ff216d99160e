"""Claude Agent SDK wrapper used for all text generation."""

import logging
import os
import shutil
import sys
from typing import Optional

from claude_agent_sdk import (
    query,
    ClaudeAgentOptions,
    ResultMessage,
    AssistantMessage,
)

from config.settings import Settings
from config.exceptions import (
    LLMError,
    LLMRateLimitError,
    LLMTimeoutError,
    ProviderAuthError,
    QuotaExceededError,
)

logger = logging.getLogger(__name__)

# Allow launching Agent SDK even when running inside a Claude Code session.
# The SDK checks for this env var and refuses to start if set.
os.environ.pop("CLAUDECODE", None)

# On Windows the bundled Claude Code CLI needs git-bash.
if sys.platform == "win32" and not os.environ.get("CLAUDE_CODE_GIT_BASH_PATH"):
    _candidates = [
        r"C:\Program Files\Git\usr\bin\bash.exe",
        r"C:\Program Files\Git\bin\bash.exe",
        r"C:\Program Files (x86)\Git\usr\bin\bash.exe",
    ]
    # Skip WSL/Windows-Apps bash
    _which = shutil.which("bash")
    if _which and "System32" not in _which and "WindowsApps" not in _which:
        _candidates.insert(0, _which)

    for _p in _candidates:
        if os.path.exists(_p):
            os.environ["CLAUDE_CODE_GIT_BASH_PATH"] = _p
            logger.debug("Set CLAUDE_CODE_GIT_BASH_PATH=%s", _p)
            break


def normalize_model_id(model: str) -> str:
    """Strip a provider prefix such as 'anthropic/' from a model id."""
    return model.rsplit("/", 1)[-1].strip()


def map_provider_error(exc: BaseException) -> LLMError:
    """Wrap an SDK failure in the matching typed LLMError."""
    if isinstance(exc, LLMError):
        return exc
    text = str(exc)
    lowered = text.lower()
    if isinstance(exc, TimeoutError) or "timeout" in lowered or "timed out" in lowered:
        return LLMTimeoutError(f"Provider request timed out: {text}")
    if "rate limit" in lowered or "429" in lowered:
        return LLMRateLimitError(f"Provider rate limit exceeded: {text}")
    if "quota" in lowered or "credit balance" in lowered:
        return QuotaExceededError(f"Provider quota exceeded: {text}")
    if "api key" in lowered or "authentication" in lowered or "401" in lowered:
        return ProviderAuthError(f"Provider authentication failed: {text}")
    return LLMError(f"Agent SDK query failed: {text}")


class AgentSDKClient:
    """Thin async wrapper over claude_agent_sdk.query().

    Authentication comes from an explicit Anthropic API key when one is
    configured, otherwise from the logged-in Claude Code CLI.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()

    def has_credentials(self) -> bool:
        if self.settings.anthropic_api_key or os.environ.get("ANTHROPIC_API_KEY"):
            return True
        return self.settings.allow_cli_auth

    def _options(self, system_prompt: str, model: str, max_turns: int) -> ClaudeAgentOptions:
        options_kwargs = {
            "system_prompt": system_prompt,
            "model": model,
            "max_turns": max_turns,
        }
        env = {}
        if self.settings.anthropic_api_key:
            env["ANTHROPIC_API_KEY"] = self.settings.anthropic_api_key
        git_bash = os.environ.get("CLAUDE_CODE_GIT_BASH_PATH")
        if git_bash:
            env["CLAUDE_CODE_GIT_BASH_PATH"] = git_bash
        if env:
            options_kwargs["env"] = env
        return ClaudeAgentOptions(**options_kwargs)

    async def chat(
        self,
        system_prompt: str,
        user_prompt: str,
        model: Optional[str] = None,
        max_turns: int = 1,
    ) -> str:
        """Send a request and return the text result.

        Args:
            system_prompt: System message guiding the model's behavior.
            user_prompt: User message content.
            model: Model id; a provider prefix is stripped. Defaults to the
                default chapter model.
            max_turns: Maximum agentic turns.

        Returns:
            The model's text response.

        Raises:
            LLMError: Or one of its subclasses when the query fails.
        """
        model = normalize_model_id(model or self.settings.default_chapter_model)
        logger.debug("AgentSDK call: model=%s, prompt=%d chars", model, len(user_prompt))

        result_text = ""
        error_text = None
        try:
            # The query() generator uses anyio cancel scopes internally, so it
            # must be exhausted rather than left early with break/return.
            async for message in query(
                prompt=user_prompt,
                options=self._options(system_prompt, model, max_turns),
            ):
                if isinstance(message, ResultMessage):
                    if getattr(message, "is_error", False):
                        error_text = message.result or message.subtype or "unknown error"
                    else:
                        result_text = message.result or result_text
                    logger.debug(
                        "AgentSDK result: %d chars, cost=$%s",
                        len(result_text),
                        message.total_cost_usd,
                    )
                elif isinstance(message, AssistantMessage) and not result_text:
                    for block in message.content:
                        text = getattr(block, "text", None)
                        if text:
                            result_text = text
                            break
        except Exception as e:
            logger.warning("AgentSDK call failed: model=%s, error=%s", model, e)
            raise map_provider_error(e) from e

        if error_text is not None:
            logger.warning("AgentSDK returned an error result: %s", error_text)
            raise map_provider_error(RuntimeError(error_text))

        if not result_text:
            logger.warning("AgentSDK returned no content")

        return result_text
