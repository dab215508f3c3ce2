"""Summarization module for LiveNotes."""

from .base import AbstractSummarizationGateway
from .chatgpt_gateway import ChatGPTSummarizationGateway, build_notes_prompt
from .scheduler import SummarizationScheduler

__all__ = [
    "AbstractSummarizationGateway",
    "ChatGPTSummarizationGateway",
    "SummarizationScheduler",
    "build_notes_prompt",
]
