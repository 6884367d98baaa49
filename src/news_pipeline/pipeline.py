"""Wires the storage, queue and stage objects together from a Config."""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from common.config import Config
from deduplicate_articles.deduplicate import Deduplicator
from fetch_articles.feed_parser import parse_feed
from fetch_articles.fetch_articles import FetchStage, handle_fetch_job
from fetch_articles.scraper import scrape_page
from job_queue.helpers import options_from_config
from job_queue.models import FETCH_QUEUE, PROCESS_QUEUE, PUBLISH_QUEUE, JobRecord
from job_queue.monitor import QueueMonitor
from job_queue.queue import JobQueue
from job_queue.worker import Worker
from news_db.articles import ArticleStore
from news_db.categories import CategoryStore
from news_db.connection import get_engine, get_session_factory
from news_db.sources import SourceRegistry
from process_articles.classify import (
    CategoryAssigner,
    Classifier,
    HuggingFaceClassifier,
    TransformersClassifier,
)
from process_articles.entities import EntityExtractor
from process_articles.process_articles import ProcessStage, handle_process_job
from process_articles.research import WebResearcher
from process_articles.rewrite import ArticleRewriter
from process_articles.summarize import (
    HuggingFaceSummarizer,
    Summarizer,
    SummaryService,
    TransformersSummarizer,
)
from publish_articles.publish_articles import PublishStage, handle_publish_job
from schedule_fetches.scheduler import Scheduler

logger = logging.getLogger(__name__)

AI_BACKENDS = ("api", "local", "none")


@dataclass
class Pipeline:
    """Everything a worker or scheduler process needs."""
    config: Config
    engine: Engine
    session_factory: sessionmaker[Session]
    sources: SourceRegistry
    articles: ArticleStore
    categories: CategoryStore
    queue: JobQueue
    monitor: QueueMonitor
    fetch_stage: FetchStage
    process_stage: ProcessStage
    publish_stage: PublishStage
    scheduler: Scheduler


def build_summarizer(config: Config) -> Optional[Summarizer]:
    ai = config.ai
    if ai.backend == "api":
        return HuggingFaceSummarizer(
            api_url=ai.api_url,
            api_key=ai.api_key,
            model=ai.summarization_model,
            fallback_model=ai.summarization_fallback_model,
            timeout=ai.summarization_timeout,
            fallback_timeout=ai.summarization_fallback_timeout,
        )
    if ai.backend == "local":
        return TransformersSummarizer(model=ai.summarization_model)
    if ai.backend == "none":
        return None
    raise ValueError(f"Unknown AI backend: {ai.backend} (expected one of {AI_BACKENDS})")


def build_classifier(config: Config) -> Optional[Classifier]:
    ai = config.ai
    if ai.backend == "api":
        return HuggingFaceClassifier(
            api_url=ai.api_url,
            api_key=ai.api_key,
            model=ai.classification_model,
            timeout=ai.classification_timeout,
        )
    if ai.backend == "local":
        return TransformersClassifier(model=ai.classification_model)
    if ai.backend == "none":
        return None
    raise ValueError(f"Unknown AI backend: {ai.backend} (expected one of {AI_BACKENDS})")


def build_researcher(config: Config) -> Optional[WebResearcher]:
    research = config.research
    if not research.enabled:
        return None
    return WebResearcher(
        max_results=research.max_results,
        search_timeout=research.search_timeout,
        page_timeout=research.page_timeout,
        pause_seconds=research.pause_seconds,
    )


def build_pipeline(config: Config, engine: Engine | None = None) -> Pipeline:
    """Build the pipeline; pass `engine` to reuse an existing database engine."""
    engine = engine or get_engine(config.database.url, echo=config.database.echo)
    session_factory = get_session_factory(engine)

    sources = SourceRegistry(session_factory)
    articles = ArticleStore(session_factory)
    categories = CategoryStore(session_factory)
    queue = JobQueue(session_factory, options_from_config(config))

    http = config.http
    fetch_stage = FetchStage(
        sources=sources,
        deduplicator=Deduplicator(articles),
        queue=queue,
        feed_parser=functools.partial(
            parse_feed,
            timeout=http.feed_timeout,
            user_agent=http.feed_user_agent,
            max_items=http.max_articles_per_fetch,
        ),
        scraper=functools.partial(
            scrape_page,
            timeout=http.scrape_timeout,
            user_agent=http.browser_user_agent,
        ),
    )
    process_stage = ProcessStage(
        sources=sources,
        articles=articles,
        summaries=SummaryService(build_summarizer(config)),
        entities=EntityExtractor(config.ai.spacy_model),
        categories=CategoryAssigner(categories, build_classifier(config)),
        rewriter=ArticleRewriter(build_researcher(config)),
    )
    scheduler = Scheduler(
        sources,
        queue,
        batch_size=config.scheduler.batch_size,
        interval_minutes=config.scheduler.interval_minutes,
    )

    logger.info("Pipeline built (AI backend: %s)", config.ai.backend)
    return Pipeline(
        config=config,
        engine=engine,
        session_factory=session_factory,
        sources=sources,
        articles=articles,
        categories=categories,
        queue=queue,
        monitor=QueueMonitor(queue),
        fetch_stage=fetch_stage,
        process_stage=process_stage,
        publish_stage=PublishStage(articles),
        scheduler=scheduler,
    )


def _payload_handler(
    handler: Callable[[Any, dict[str, Any]], dict[str, Any]], stage: Any
) -> Callable[[JobRecord], dict[str, Any]]:
    def run(job: JobRecord) -> dict[str, Any]:
        return handler(stage, job.payload)

    return run


def build_workers(pipeline: Pipeline, queue_names: tuple[str, ...] | None = None) -> list[Worker]:
    """One worker per stage queue, sized from the queue config."""
    handlers = {
        FETCH_QUEUE: _payload_handler(handle_fetch_job, pipeline.fetch_stage),
        PROCESS_QUEUE: _payload_handler(handle_process_job, pipeline.process_stage),
        PUBLISH_QUEUE: _payload_handler(handle_publish_job, pipeline.publish_stage),
    }
    queue_config = pipeline.config.queue
    workers = []
    for name in queue_names or tuple(handlers):
        if name not in handlers:
            raise ValueError(f"Unknown queue: {name}")
        stage_config = queue_config.stages.get(name)
        workers.append(
            Worker(
                pipeline.queue,
                name,
                handlers[name],
                concurrency=stage_config.concurrency if stage_config else 1,
                poll_interval=queue_config.poll_interval_seconds,
                stall_timeout_seconds=queue_config.stall_timeout_seconds,
            )
        )
    return workers
