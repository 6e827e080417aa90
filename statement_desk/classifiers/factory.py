"""
Builds the AI classifier once at process start.
"""

from typing import Optional

import structlog

from statement_desk.classifiers.base import TransactionClassifier
from statement_desk.config import Settings

logger = structlog.get_logger(__name__)


def build_classifier(settings: Settings) -> Optional[TransactionClassifier]:
    """Return the Claude classifier, or None when no API key is configured."""
    if not settings.ANTHROPIC_API_KEY:
        logger.info("ai_classifier_disabled", reason="ANTHROPIC_API_KEY not set")
        return None

    from statement_desk.classifiers.claude_classifier import ClaudeClassifier
    classifier = ClaudeClassifier(
        api_key=settings.ANTHROPIC_API_KEY,
        model=settings.CLAUDE_MODEL,
        max_tokens=settings.AI_MAX_TOKENS,
    )
    logger.info("ai_classifier_ready", classifier_name=classifier.classifier_name, model=settings.CLAUDE_MODEL)
    return classifier
