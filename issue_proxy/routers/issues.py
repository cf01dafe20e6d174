"""Anonymous issue report endpoint."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from issue_proxy.config import get_settings
from issue_proxy.services.pipeline import IssuePipeline

router = APIRouter(prefix="/issues", tags=["issues"])

# Every method reaches the pipeline so it can answer 204 / 405 itself
_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def build_pipeline(request: Request) -> IssuePipeline:
    """Build a pipeline around the app's shared limiter and secret resolver."""
    return IssuePipeline(
        settings=get_settings(),
        rate_limiter=request.app.state.rate_limiter,
        secret_resolver=request.app.state.secret_resolver,
    )


@router.api_route("", methods=_METHODS)
async def submit_issue(request: Request) -> Response:
    """Create a GitHub issue from an anonymous report."""
    pipeline = build_pipeline(request)
    result = await pipeline.handle(
        request.method, request.headers, await request.body()
    )
    if result.content is None:
        return Response(status_code=result.status_code)
    return JSONResponse(content=result.content, status_code=result.status_code)
