"""FastAPI application entry point for the triage gate.

Receives GitHub webhooks for newly opened issues and pull requests,
acknowledges them immediately, and triages each one in a background task.

Endpoints:
- POST /webhooks/github: webhook receiver
- GET /health: liveness probe
- GET /metrics: Prometheus metrics
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional, Set

from fastapi import FastAPI, Request
from fastapi.responses import Response

from .classifier.oracle import LLMOracle
from .config import TriageConfig, TriageSettings, get_settings, load_triage_config
from .events.emitter import EventSinkType, create_event_emitter
from .events.metrics import generate_metrics_output
from .github.client import GitHubClient
from .orchestrator import TriageOrchestrator
from .pipeline.issue import IssuePipeline
from .pipeline.pull_request import PullRequestPipeline
from .webhook.handler import WebhookHandler

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Global instances, initialized during lifespan startup
settings: TriageSettings
orchestrator: Optional[TriageOrchestrator] = None
webhook_handler: Optional[WebhookHandler] = None
github_client: Optional[GitHubClient] = None

# Strong references to in-flight triage tasks
_background_tasks: Set[asyncio.Task] = set()


def _redact_secret(value: Optional[str], visible_chars: int = 4) -> str:
    """Redact a secret value, showing only the first few characters."""
    if not value:
        return "<unset>"
    if len(value) <= visible_chars:
        return "*" * len(value)
    return value[:visible_chars] + "*" * (len(value) - visible_chars)


def _log_configuration(settings: TriageSettings, config: TriageConfig) -> None:
    """Log configuration values with secrets redacted."""
    logger.info("Triage configuration:")
    logger.info(f"  GitHub Base URL: {settings.github_base_url}")
    logger.info(f"  GitHub Token: {_redact_secret(settings.github_token)}")
    logger.info(f"  LLM URL: {settings.llm_url}")
    logger.info(f"  LLM Model: {settings.llm_model}")
    logger.info(f"  LLM API Key: {_redact_secret(settings.llm_api_key)}")
    logger.info(f"  Config Path: {settings.config_path}")
    logger.info(f"  Labels: {', '.join(config.labels)}")
    logger.info(f"  Blocklisted Authors: {len(config.blocklist)}")
    logger.info(f"  Analysis Depth: {config.analysis_depth}")
    logger.info(f"  Analyze File Changes: {config.analyze_file_changes}")
    logger.info(f"  Host: {settings.host}")
    logger.info(f"  Port: {settings.port}")


def build_orchestrator(
    cfg: TriageSettings,
    config: TriageConfig,
    gh_client: GitHubClient,
) -> TriageOrchestrator:
    """Wire the oracle, pipelines and emitters into a TriageOrchestrator.

    Raises:
        ConfigurationError: If a pipeline is missing a required template.
    """
    oracle = LLMOracle(
        llm_url=cfg.llm_url,
        model_name=cfg.llm_model,
        api_key=cfg.llm_api_key or cfg.github_token,
        timeout=cfg.llm_timeout_seconds,
        temperature=cfg.llm_temperature,
        max_tokens=cfg.llm_max_tokens,
    )
    return TriageOrchestrator(
        github_client=gh_client,
        issue_pipeline=IssuePipeline(oracle, config),
        pull_request_pipeline=PullRequestPipeline(oracle, config),
        config=config,
        event_emitter=create_event_emitter(
            [EventSinkType.LOGGING, EventSinkType.METRICS]
        ),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load configuration, wire dependencies, and close clients on shutdown."""
    global settings, orchestrator, webhook_handler, github_client

    logger.info("Triage gate starting up...")

    settings = get_settings()
    config = load_triage_config(settings)
    _log_configuration(settings, config)

    webhook_handler = WebhookHandler()
    github_client = GitHubClient(
        token=settings.github_token,
        base_url=settings.github_base_url,
    )
    orchestrator = build_orchestrator(settings, config, github_client)

    logger.info("Triage gate started successfully")

    yield

    logger.info("Triage gate shutting down...")

    if _background_tasks:
        await asyncio.gather(*_background_tasks, return_exceptions=True)

    if github_client is not None:
        await github_client.close()

    if orchestrator is not None:
        await orchestrator.event_emitter.close()

    logger.info("Triage gate shutdown complete")


app = FastAPI(
    title="Triage Gate",
    description="Automated triage of new GitHub issues and pull requests",
    version="1.0.0",
    lifespan=lifespan,
)


@app.get("/health")
async def health():
    """Liveness probe endpoint."""
    return {"status": "healthy"}


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_metrics_output(),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )


@app.post("/webhooks/github")
async def github_webhook(request: Request):
    """GitHub webhook receiver endpoint.

    Signature validation is expected upstream. Supported deliveries are
    acknowledged immediately and triaged in the background.
    """
    payload = await request.json()

    if webhook_handler is None or orchestrator is None:
        logger.error("Triage gate not initialized")
        return {"status": "error", "message": "Triage gate not initialized"}

    event_name = request.headers.get("X-GitHub-Event")
    event = webhook_handler.parse_event(event_name, payload)
    if event is None:
        return {"status": "ignored", "message": "Unsupported or invalid event"}

    task = asyncio.create_task(orchestrator.process_event(event))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)

    return {"status": "accepted", "artifact_id": event.artifact_id}


if __name__ == "__main__":
    import uvicorn

    dev_settings = get_settings()
    uvicorn.run(
        "src.triage.main:app",
        host=dev_settings.host,
        port=dev_settings.port,
        reload=True,
    )
