"""Guarded answering of natural-language credit questions."""

from cardpilot.ask.answer import AnswerDepth, HardAnswer, HardAnswerResponse, QuestionType
from cardpilot.ask.guard import AskContext, AskEngine, AskRequest, AuditRecord, GenerationRequest

__all__ = [
    "AnswerDepth",
    "AskContext",
    "AskEngine",
    "AskRequest",
    "AuditRecord",
    "GenerationRequest",
    "HardAnswer",
    "HardAnswerResponse",
    "QuestionType",
]
