"""Signed webhook receiver for CI reporting.

Endpoints:
  POST /webhook/test-results  {testResults: {summary}, buildId, runId}
  POST /webhook/ci-trigger    {repository, branch, commit, action}
  GET  /health

Both POST endpoints require X-Webhook-Signature: sha256=<hex HMAC of the raw body>.
"""

import argparse
import logging
from typing import Callable, Union

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from suite_logging import configure_logging
from suite_settings import SuiteSettings, get_settings
from webhook_signature import SIGNATURE_HEADER, verify_signature


class RunSummary(BaseModel):
    summary: str


class ResultsPayload(BaseModel):
    testResults: RunSummary
    buildId: Union[str, int]
    runId: Union[str, int]


class CiTriggerPayload(BaseModel):
    repository: str
    branch: str
    commit: str
    action: str


def handle_test_results(payload: ResultsPayload, logger: logging.Logger):
    logger.info("Received test results webhook for build %s, run %s", payload.buildId, payload.runId)
    logger.info("Test summary: %s", payload.testResults.summary)


def handle_ci_trigger(payload: CiTriggerPayload, logger: logging.Logger):
    logger.info("Received CI trigger webhook for %s/%s (%s)", payload.repository, payload.branch, payload.commit)
    logger.info("Action: %s", payload.action)


def create_app(settings: SuiteSettings | None = None, logger: logging.Logger | None = None) -> FastAPI:
    """Application factory used by both runtime and tests."""
    if settings is None:
        settings = get_settings()
    if logger is None:
        logger = logging.getLogger("angelcard.webhooks")

    app = FastAPI(title="AngelCard test webhooks")

    async def signed_dispatch(request: Request, model: type[BaseModel], handler: Callable) -> JSONResponse:
        body = await request.body()
        verdict = verify_signature(settings.webhook_secret, body, request.headers.get(SIGNATURE_HEADER))
        if not verdict.accepted:
            logger.warning("Invalid webhook signature on %s (%s)", request.url.path, verdict.value)
            return JSONResponse({"error": "Invalid signature"}, status_code=401)
        try:
            payload = model.model_validate_json(body)
        except ValidationError as e:
            logger.warning("Rejected webhook payload on %s: %s", request.url.path, e.error_count())
            return JSONResponse({"error": "Invalid payload", "detail": e.errors(include_url=False, include_context=False)}, status_code=422)
        handler(payload, logger)
        return JSONResponse({"status": "success"}, status_code=200)

    @app.post("/webhook/test-results")
    async def test_results(request: Request):
        return await signed_dispatch(request, ResultsPayload, handle_test_results)

    @app.post("/webhook/ci-trigger")
    async def ci_trigger(request: Request):
        return await signed_dispatch(request, CiTriggerPayload, handle_ci_trigger)

    @app.get("/health")
    def health():
        return {"status": "healthy"}

    return app


def main():
    parser = argparse.ArgumentParser(description="AngelCard CI webhook receiver")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, help="Defaults to WEBHOOK_PORT")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    settings = get_settings()
    logger = configure_logging(settings, verbose=args.verbose, name="angelcard.webhooks")
    port = args.port or settings.webhook_port
    logger.info("Webhook server running on port %s", port)
    uvicorn.run(create_app(settings, logger), host=args.host, port=port, log_level="warning")


if __name__ == "__main__":
    main()
