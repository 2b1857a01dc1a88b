"""Rules routes: list rules, validation report, triggers, resolve a load plan, reload."""

from __future__ import annotations

from pydantic import BaseModel, Field, ValidationError
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from ruledex.rule_engine.index import RuleRegistry
from ruledex.rule_engine.keywords import extract_keywords, keyword_vocabulary
from ruledex.rule_engine.models import RequestContext
from ruledex.rule_engine.resolver import Resolver, UnresolvableLoadPlan


class ResolveRequest(BaseModel):
    extensions: list[str] = Field(default_factory=list)
    filenames: list[str] = Field(default_factory=list)
    directories: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    paths: list[str] = Field(default_factory=list)
    prompt: str | None = None


def _registry(request: Request) -> RuleRegistry:
    return request.app.state.rules_index.registry


def _summary(registry: RuleRegistry) -> list[dict]:
    return [
        {
            "id": doc.id,
            "title": doc.title,
            "context_tier": doc.get("ContextTier"),
            "token_budget": doc.token_budget,
            "triggers": [str(t) for t in doc.triggers],
            "depends": doc.depends,
        }
        for doc in registry.documents
    ]


async def list_rules(request: Request) -> JSONResponse:
    """GET /api/rules — list indexed rules."""
    registry = _registry(request)
    return JSONResponse(
        {
            "rules": _summary(registry),
            "count": len(registry),
            "snapshot_hash": registry.snapshot_hash,
        }
    )


async def get_rule(request: Request) -> JSONResponse:
    """GET /api/rules/{rule_id} — one parsed rule document."""
    rule_id = request.path_params["rule_id"]
    doc = _registry(request).get(rule_id)
    if doc is None:
        return JSONResponse({"error": f"Rule '{rule_id}' not found"}, status_code=404)
    return JSONResponse(doc.model_dump(mode="json", exclude={"body"}))


async def validation_report(request: Request) -> JSONResponse:
    """GET /api/rules/report — per-file validation results."""
    registry = _registry(request)
    return JSONResponse(
        {
            "passed": registry.passed,
            "critical_count": registry.critical_count,
            "files": [r.model_dump(mode="json") for r in registry.reports],
            "dangling": [d.model_dump() for d in registry.dangling],
            "cycles": [c.path for c in registry.cycles],
        }
    )


async def list_triggers(request: Request) -> JSONResponse:
    """GET /api/rules/triggers — trigger to owning rules."""
    index = _registry(request).trigger_index
    return JSONResponse({"triggers": index.as_dict(), "count": len(index)})


async def resolve_rules(request: Request) -> JSONResponse:
    """POST /api/rules/resolve — ordered load plan for a request context."""
    try:
        body = await request.json()
        req = ResolveRequest.model_validate(body)
    except (ValueError, ValidationError):
        return JSONResponse({"error": "Valid resolve request body required"}, status_code=422)

    registry = _registry(request)
    keywords = set(req.keywords)
    if req.prompt:
        keywords |= extract_keywords(req.prompt, keyword_vocabulary(registry.trigger_index))

    context = RequestContext.from_paths(req.paths, keywords=keywords)
    context.extensions.update(req.extensions)
    context.filenames.update(req.filenames)
    context.directories.update(req.directories)

    try:
        plan = Resolver(registry).resolve(context)
    except UnresolvableLoadPlan as e:
        cycle = e.cycle.path if e.cycle is not None else None
        return JSONResponse({"error": str(e), "cycle": cycle}, status_code=409)

    data = plan.model_dump()
    data["declaration"] = plan.render(foundation=registry.foundation)
    return JSONResponse(data)


async def reload_rules(request: Request) -> JSONResponse:
    """POST /api/rules/reload — rebuild the registry and publish it."""
    registry = request.app.state.rules_index.refresh()
    return JSONResponse(
        {
            "count": len(registry),
            "snapshot_hash": registry.snapshot_hash,
            "passed": registry.passed,
        }
    )


routes = [
    Route("/api/rules", list_rules),
    Route("/api/rules/report", validation_report),
    Route("/api/rules/triggers", list_triggers),
    Route("/api/rules/resolve", resolve_rules, methods=["POST"]),
    Route("/api/rules/reload", reload_rules, methods=["POST"]),
    Route("/api/rules/{rule_id}", get_rule),
]
