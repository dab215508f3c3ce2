"""ChatGPT summarization gateway that turns a running transcript into recruiter notes."""

import logging
from typing import Optional

import aiohttp

from .base import AbstractSummarizationGateway
from ..config import DEFAULT_PLACEHOLDER_NOTES
from ..errors import SummarizationFailure

logger = logging.getLogger(__name__)

NOTE_SECTIONS = (
    "Marketing Experience",
    "Leadership & Team Collaboration",
    "Industry Knowledge & Interests",
    "Cultural Background & Language",
    "Work Authorization & Location",
    "Availability & Work Preferences",
    "Salary Expectations",
)

RECRUITER_NOTES_PROMPT = """You are an interview assistant that writes recruiter notes from a live interview transcript.

The transcript below grows as the interview continues. Every request contains the ENTIRE transcript so far; rewrite the notes from scratch so they cover all of it.

If the transcript is only a few words, filler sounds ("um", "uh"), or contains nothing relevant to the sections listed below, reply with exactly this text and nothing else:
{placeholder}

Otherwise follow these rules:
1. Group information under these section headers, written in bold followed by a colon:
{sections}
2. Under each header write bullet points that start with "●" and are full sentences.
3. Only include facts the candidate explicitly stated. Never guess or invent details.
4. Rephrase spoken language into clean, professional English. The notes must be in English.
5. Do not output JSON or code.
6. Leave out any section with no relevant content. Never print an empty header.

TRANSCRIPT:
---
{transcript}
---
"""


def build_notes_prompt(transcript: str, placeholder: str = DEFAULT_PLACEHOLDER_NOTES) -> str:
    sections = "\n".join(f"   - {name}" for name in NOTE_SECTIONS)
    return RECRUITER_NOTES_PROMPT.format(
        placeholder=placeholder,
        sections=sections,
        transcript=transcript,
    )


class ChatGPTSummarizationGateway(AbstractSummarizationGateway):
    """Sends the recruiter-notes prompt to the chat completions API."""

    def __init__(self, api_key: str, model: str = "gpt-4o-mini",
                 temperature: float = 0.3, max_tokens: int = 2000,
                 placeholder: str = DEFAULT_PLACEHOLDER_NOTES,
                 request_timeout: Optional[float] = 120.0):
        """Initialize ChatGPT summarization gateway.

        Args:
            api_key: OpenAI API key
            model: ChatGPT model to use
            temperature: Temperature for response generation (0.0 to 1.0)
            max_tokens: Maximum tokens in response
            placeholder: Text the model returns for uninformative transcripts
            request_timeout: Total request timeout in seconds
        """
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.placeholder = placeholder
        self.request_timeout = request_timeout
        self.base_url = "https://api.openai.com/v1/chat/completions"

        logger.info(f"ChatGPTSummarizationGateway initialized with model: {model}")

    async def summarize(self, transcript: str) -> str:
        """Send the full transcript and return the notes text.

        Raises:
            SummarizationFailure: If the API call fails or the response is malformed
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

        data = {
            "model": self.model,
            "messages": [
                {
                    "role": "user",
                    "content": build_notes_prompt(transcript, self.placeholder)
                }
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens
        }

        logger.debug(f"Requesting notes for {len(transcript)} chars of transcript")
        try:
            timeout = aiohttp.ClientTimeout(total=self.request_timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.base_url, headers=headers, json=data) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        raise SummarizationFailure(f"ChatGPT API error: {response.status} - {error_text}")

                    result = await response.json()
        except aiohttp.ClientError as e:
            logger.error(f"ChatGPT request failed: {e}")
            raise SummarizationFailure(f"ChatGPT request failed: {e}") from e

        try:
            content = result["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise SummarizationFailure(f"Malformed ChatGPT response: {result!r}") from e
        if not isinstance(content, str):
            raise SummarizationFailure(f"Malformed ChatGPT response content: {content!r}")
        return content.strip()
