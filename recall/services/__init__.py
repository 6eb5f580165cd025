from .answer_service import Answer, AnswerService
from .tagging_service import TAG_SCHEMA, TaggingService

__all__ = ["Answer", "AnswerService", "TAG_SCHEMA", "TaggingService"]
