"""HTTP surface for blueprint synthesis, validation, materialization and workflow runs."""

from __future__ import annotations

import os
import re
import sys
import copy
import asyncio
import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

ROOT = Path(__file__).resolve().parents[1]
for _path in (ROOT / "src", ROOT):
    if str(_path) not in sys.path:
        sys.path.insert(0, str(_path))


def _read_env_file(path: Path) -> dict:
    values = {}
    if not path.exists():
        return values
    for raw in path.read_text(encoding="utf-8").splitlines():
        raw = raw.strip()
        if raw.startswith("#") or "=" not in raw:
            continue
        key, _, value = raw.partition("=")
        if key.strip():
            values[key.strip()] = value.strip().strip("'\"")
    return values


# Real environment wins over app/.env.
for _key, _value in _read_env_file(ROOT / "app" / ".env").items():
    os.environ.setdefault(_key, _value)

from appforge.design_systems import for_industry, has_industry_mapping, list_design_systems
import blueprint_synth
import page_materializer
import schema_harden
from integrations import IntegrationRegistry
from workflow_engine import WorkflowEngine, new_context
from app.email import register_email_integration
from app.stores import MemoryRecordApi, MemoryRecordStore


app = FastAPI(title="AppForge")
logger = logging.getLogger("appforge.api")
logging.basicConfig(level=os.getenv("APPFORGE_LOG_LEVEL", "INFO").upper())

_DEV_ORIGIN_PATTERN = r"http://(localhost|127\.0\.0\.1)(:\d+)?"
_DEV_ORIGIN = re.compile(rf"^{_DEV_ORIGIN_PATTERN}$")
_ALLOWED_ORIGINS = frozenset(
    item.strip().rstrip("/") for item in os.getenv("APPFORGE_CORS_ORIGINS", "").split(",") if item.strip()
)
_CORS_HEADERS = {
    "Access-Control-Allow-Credentials": "true",
    "Access-Control-Allow-Headers": "*",
    "Access-Control-Allow-Methods": "*",
    "Vary": "Origin",
}

integrations = IntegrationRegistry()
register_email_integration(integrations)
engine = WorkflowEngine(integrations=integrations)
record_store = MemoryRecordStore()


def _origin_allowed(origin: str | None) -> bool:
    if not isinstance(origin, str) or not origin:
        return False
    origin = origin.rstrip("/")
    return origin in _ALLOWED_ORIGINS or bool(_DEV_ORIGIN.match(origin))


@app.middleware("http")
async def cors_fallback_middleware(request: Request, call_next):
    origin = request.headers.get("origin")
    response = JSONResponse({}) if request.method == "OPTIONS" else await call_next(request)
    if _origin_allowed(origin):
        response.headers.setdefault("Access-Control-Allow-Origin", origin)
        for name, value in _CORS_HEADERS.items():
            response.headers.setdefault(name, value)
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=sorted(_ALLOWED_ORIGINS),
    allow_origin_regex=_DEV_ORIGIN_PATTERN,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _envelope(ok: bool, payload: dict, errors: list, warnings: list, status: int) -> JSONResponse:
    return JSONResponse(jsonable_encoder({"ok": ok, **payload, "errors": errors, "warnings": warnings}), status_code=status)


def _error_response(code: str, message: str, path: str | None = None, detail: dict | None = None, status: int = 400) -> JSONResponse:
    return _envelope(False, {}, [{"code": code, "message": message, "path": path, "detail": detail}], [], status)


def _ok_response(payload: dict, warnings: list | None = None, status: int = 200) -> JSONResponse:
    return _envelope(True, payload, [], warnings or [], status)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("api_unhandled path=%s", request.url.path)
    return _error_response("INTERNAL_ERROR", "Unexpected server error", detail={"error": str(exc)}, status=500)


async def _safe_json(request: Request) -> dict:
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


@app.get("/health")
async def health() -> dict:
    return {"ok": True}


@app.post("/blueprints/generate")
async def generate_blueprint(request: Request):
    body = await _safe_json(request)
    result = blueprint_synth.generate(body)
    logger.info("blueprint_generated app_id=%s confidence=%s", result["schema"].get("id"), result["confidence"])
    return _ok_response({"result": result}, warnings=result.get("warnings"))


@app.post("/blueprints/revise")
async def revise_blueprint(request: Request):
    body = await _safe_json(request)
    schema = body.get("schema")
    if not isinstance(schema, dict):
        return _error_response("SCHEMA_REQUIRED", "schema must be an object", "schema")
    context = {k: v for k, v in body.items() if k != "schema"}
    result = blueprint_synth.revise(schema, context)
    return _ok_response({"result": result}, warnings=result.get("warnings"))


@app.post("/blueprints/validate")
async def validate_blueprint(request: Request):
    body = await _safe_json(request)
    schema = body.get("schema", body)
    result = schema_harden.validate(schema)
    warnings = [issue for issue in result["issues"] if issue.get("severity") != "error"]
    return _ok_response({"result": result}, warnings=warnings)


@app.post("/blueprints/materialize")
async def materialize_blueprint(request: Request):
    body = await _safe_json(request)
    blueprint = body.get("blueprint")
    if not isinstance(blueprint, dict):
        return _error_response("BLUEPRINT_REQUIRED", "blueprint must be an object", "blueprint")
    app_def = page_materializer.materialize(blueprint, body.get("context"))
    return _ok_response({"app": app_def})


@app.get("/design-systems")
async def design_systems() -> JSONResponse:
    return _ok_response({"designSystems": list_design_systems()})


@app.get("/design-systems/industry/{industry_id}")
async def design_system_for_industry(industry_id: str) -> JSONResponse:
    warnings = []
    if not has_industry_mapping(industry_id):
        warnings.append({"code": "INDUSTRY_UNMAPPED", "message": f"No design system for {industry_id}; using default", "path": "industry_id"})
    return _ok_response({"designSystem": for_industry(industry_id)}, warnings=warnings)


def _workflows_from(body: dict) -> list:
    workflows = body.get("workflows")
    if workflows is None and isinstance(body.get("schema"), dict):
        workflows = body["schema"].get("workflows")
    return [w for w in workflows if isinstance(w, dict)] if isinstance(workflows, list) else []


@app.post("/workflows/match")
async def match_workflows(request: Request):
    body = await _safe_json(request)
    trigger = body.get("trigger") if isinstance(body.get("trigger"), dict) else {}
    if not trigger.get("type"):
        return _error_response("TRIGGER_REQUIRED", "trigger.type is required", "trigger.type")
    matches = engine.find_matching_workflows(
        _workflows_from(body), trigger["type"], trigger.get("componentId"), trigger.get("entityId")
    )
    return _ok_response({"workflowIds": [w.get("id") for w in matches]})


async def _run_one(workflow: dict, body: dict) -> dict:
    ctx = body.get("context") if isinstance(body.get("context"), dict) else {}
    context = new_context(
        app_id=ctx.get("appId"),
        entity_id=ctx.get("entityId"),
        record_id=ctx.get("recordId"),
        form_data=ctx.get("formData"),
        current_data=ctx.get("currentData"),
        variables=copy.deepcopy(ctx.get("variables") or {}),
        user=ctx.get("user"),
    )
    api = MemoryRecordApi(record_store, context["variables"])
    result = await engine.execute_workflow(workflow, context, api)
    return {**result, "effects": api.effects, "variables": context["variables"]}


@app.post("/workflows/run")
async def run_workflows(request: Request):
    body = await _safe_json(request)
    workflows = _workflows_from(body)
    if body.get("workflowId"):
        selected = [w for w in workflows if w.get("id") == body["workflowId"]]
        if not selected:
            return _error_response("WORKFLOW_NOT_FOUND", "Workflow not found", "workflowId", status=404)
    else:
        trigger = body.get("trigger") if isinstance(body.get("trigger"), dict) else {}
        if not trigger.get("type"):
            return _error_response("TRIGGER_REQUIRED", "workflowId or trigger.type is required", "trigger.type")
        selected = engine.find_matching_workflows(workflows, trigger["type"], trigger.get("componentId"), trigger.get("entityId"))
    runs = await asyncio.gather(*(_run_one(workflow, body) for workflow in selected))
    logger.info("workflows_run count=%s failed=%s", len(runs), sum(1 for r in runs if not r["success"]))
    return _ok_response({"runs": list(runs)})
