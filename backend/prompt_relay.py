"""
Prompt Relay - Forward an instruction to the language model

Sends the user's instruction with the command system prompt and returns the
model's raw text. The text is untrusted; the command parser validates it.
"""

import asyncio
import logging
from typing import Optional

from agents import Agent, ModelSettings, Runner
from agents.extensions.models.litellm_model import LitellmModel
from agents.tracing import set_tracing_disabled

from engine_errors import RelayError
from system_prompt import SYSTEM_PROMPT

set_tracing_disabled(True)

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "groq/meta-llama/llama-4-scout-17b-16e-instruct"
JSON_RESPONSE_FORMAT = {"type": "json_object"}


class PromptRelay:
    """One-shot relay to the model provider through the Agents SDK."""

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        api_key: Optional[str] = None,
        temperature: float = 0.2,
        timeout: float = 60.0,
    ):
        self.model_name = model
        self.api_key = api_key
        self.temperature = temperature
        self.timeout = timeout

    def _build_agent(self, system_prompt: str) -> Agent:
        return Agent(
            name="FigmaCommandInterpreter",
            instructions=system_prompt,
            model=LitellmModel(model=self.model_name, api_key=self.api_key),
            model_settings=ModelSettings(
                temperature=self.temperature,
                include_usage=True,
                extra_args={"response_format": JSON_RESPONSE_FORMAT},
            ),
        )

    async def send(self, prompt: str, system_prompt: str = SYSTEM_PROMPT) -> str:
        """Return the model's raw text for `prompt`.

        Raises:
            RelayError: `prompt` is missing or not a string (code
                `invalid_prompt`), or the provider call failed or returned
                nothing (code `relay_failed`).
        """
        if not isinstance(prompt, str) or not prompt.strip():
            raise RelayError("Prompt must be a non-empty string", code="invalid_prompt", details={"prompt": prompt})

        agent = self._build_agent(system_prompt)
        logger.info(f"📡 Relaying prompt to {self.model_name} ({len(prompt)} chars)")
        try:
            result = await asyncio.wait_for(Runner.run(agent, input=prompt, max_turns=1), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error(f"⏰ Model call timed out after {self.timeout}s")
            raise RelayError(f"Model call timed out after {self.timeout:.1f} seconds", details={"model": self.model_name})
        except Exception as e:
            logger.error(f"❌ Model call failed: {e}")
            raise RelayError("Failed to process command", details={"model": self.model_name, "error": str(e)}) from e

        output = getattr(result, "final_output", None)
        if not isinstance(output, str) or not output.strip():
            logger.error("❌ Model returned an empty response")
            raise RelayError("Model returned an empty response", details={"model": self.model_name})

        logger.info(f"📨 Model response received ({len(output)} chars)")
        return output
