"""Publish stage: move a pending article to published.

The process stage inserts articles as published directly, so nothing in
the pipeline enqueues publish jobs today. The stage stays available for
operators who add articles in the pending state.
"""

from __future__ import annotations

import logging
from typing import Any

from common.errors import ContentValidationError
from common.serialization import serialize_dataclass
from publish_articles.models import PublishResult

logger = logging.getLogger(__name__)


class PublishStage:
    def __init__(self, articles):
        self.articles = articles

    def run(self, article_id: str) -> PublishResult:
        if not article_id:
            raise ContentValidationError("Publish job without article_id")

        published = self.articles.publish_pending(article_id)
        if published:
            logger.info("Published article %s", article_id)
        else:
            logger.info("Article %s is missing or not pending, nothing to publish", article_id)
        return PublishResult(article_id=article_id, published=published)


def handle_publish_job(stage: PublishStage, payload: dict[str, Any]) -> dict[str, Any]:
    """Queue handler: payload carries the article id."""
    return serialize_dataclass(stage.run(payload.get("article_id") or ""))
