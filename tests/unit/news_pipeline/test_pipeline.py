"""Tests for news_pipeline.pipeline and news_pipeline.helpers."""

import pytest

from common.config import Config
from job_queue.models import FETCH_QUEUE, PROCESS_QUEUE, PUBLISH_QUEUE
from news_pipeline.helpers import parse_news_pipeline_args
from news_pipeline.pipeline import (
    build_classifier,
    build_pipeline,
    build_researcher,
    build_summarizer,
    build_workers,
)
from process_articles.classify import HuggingFaceClassifier, TransformersClassifier
from process_articles.research import WebResearcher
from process_articles.summarize import HuggingFaceSummarizer, TransformersSummarizer


def offline_config() -> Config:
    config = Config()
    config.ai.backend = "none"
    config.research.enabled = False
    return config


class TestBuilders:
    def test_api_backend(self) -> None:
        config = Config()
        config.ai.api_key = "hf_key"
        summarizer = build_summarizer(config)
        assert isinstance(summarizer, HuggingFaceSummarizer)
        assert summarizer.api_key == "hf_key"
        assert isinstance(build_classifier(config), HuggingFaceClassifier)

    def test_local_backend(self) -> None:
        config = Config()
        config.ai.backend = "local"
        assert isinstance(build_summarizer(config), TransformersSummarizer)
        assert isinstance(build_classifier(config), TransformersClassifier)

    def test_no_backend(self) -> None:
        config = offline_config()
        assert build_summarizer(config) is None
        assert build_classifier(config) is None

    def test_unknown_backend(self) -> None:
        config = Config()
        config.ai.backend = "openai"
        with pytest.raises(ValueError):
            build_summarizer(config)

    def test_researcher(self) -> None:
        config = Config()
        assert isinstance(build_researcher(config), WebResearcher)
        assert build_researcher(offline_config()) is None


class TestBuildPipeline:
    def test_wires_stages(self, engine) -> None:
        pipeline = build_pipeline(offline_config(), engine)

        assert pipeline.engine is engine
        assert pipeline.process_stage.summaries.summarizer is None
        assert pipeline.process_stage.rewriter.researcher is None
        assert pipeline.fetch_stage.queue is pipeline.queue
        assert pipeline.queue.options_for(FETCH_QUEUE).attempts == 3

    def test_build_workers(self, engine) -> None:
        pipeline = build_pipeline(offline_config(), engine)

        workers = build_workers(pipeline)

        assert [w.queue_name for w in workers] == [FETCH_QUEUE, PROCESS_QUEUE, PUBLISH_QUEUE]
        assert [w.concurrency for w in workers] == [5, 3, 10]

    def test_build_selected_workers(self, engine) -> None:
        pipeline = build_pipeline(offline_config(), engine)
        assert [w.queue_name for w in build_workers(pipeline, (PROCESS_QUEUE,))] == [PROCESS_QUEUE]
        with pytest.raises(ValueError):
            build_workers(pipeline, ("emails",))


class TestParseArgs:
    def test_run_workers_queues(self) -> None:
        args = parse_news_pipeline_args(["run-workers", "--queue", FETCH_QUEUE, "--queue", PROCESS_QUEUE])
        assert args.queues == [FETCH_QUEUE, PROCESS_QUEUE]

    def test_init_db(self) -> None:
        args = parse_news_pipeline_args(["--config", "local", "init-db", "--no-seed"])
        assert args.command == "init-db"
        assert args.no_seed is True
        assert args.config == "local"
