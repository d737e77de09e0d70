"""Trigger-to-action runtime for generated app workflows.

An engine instance owns its handler map and integration registry; nothing is
shared between instances. Actions of one run are awaited in declared order so
later actions observe earlier side effects. Separate runs are independent
tasks; serializing writes to the same record is left to the record store.
"""

from __future__ import annotations

import inspect
import logging
import os
from typing import Any, Dict, List

import httpx

from action_handlers import DEFAULT_HANDLERS, ActionHandler
from condition_eval import evaluate_condition
from integrations import IntegrationRegistry

logger = logging.getLogger("appforge.workflow_engine")

CONDITION_FAIL_OPEN = os.getenv("APPFORGE_CONDITION_FAIL_OPEN", "1").strip().lower() in ("1", "true", "yes")

TRIGGER_ALIASES = {
    "onClick": "button_click",
    "onSubmit": "form_submit",
    "onChange": "field_change",
    "onPageLoad": "page_load",
    "onLoad": "page_load",
    "scheduled": "schedule",
    "onCreate": "record_create",
    "onUpdate": "record_update",
    "onDelete": "record_delete",
}


def normalize_trigger_type(trigger_type: str | None) -> str | None:
    if not isinstance(trigger_type, str):
        return None
    return TRIGGER_ALIASES.get(trigger_type, trigger_type)


def new_context(
    app_id: str | None = None,
    entity_id: str | None = None,
    record_id: str | None = None,
    form_data: dict | None = None,
    current_data: dict | None = None,
    variables: dict | None = None,
    user: dict | None = None,
) -> dict:
    context: Dict[str, Any] = {"appId": app_id, "variables": dict(variables) if isinstance(variables, dict) else {}}
    if entity_id is not None:
        context["entityId"] = entity_id
    if record_id is not None:
        context["recordId"] = record_id
    if form_data is not None:
        context["formData"] = dict(form_data) if isinstance(form_data, dict) else {}
    if current_data is not None:
        context["currentData"] = dict(current_data) if isinstance(current_data, dict) else {}
    if user is not None:
        context["user"] = dict(user) if isinstance(user, dict) else {}
    return context


class WorkflowEngine:
    def __init__(
        self,
        handlers: Dict[str, ActionHandler] | None = None,
        integrations: IntegrationRegistry | None = None,
        fail_open: bool | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._handlers: Dict[str, ActionHandler] = dict(DEFAULT_HANDLERS if handlers is None else handlers)
        self.integrations = integrations if integrations is not None else IntegrationRegistry()
        self.fail_open = CONDITION_FAIL_OPEN if fail_open is None else bool(fail_open)
        self.transport = transport

    def register_handler(self, action_type: str, handler: ActionHandler) -> None:
        if not action_type or not callable(handler):
            raise ValueError("action_type and a callable handler are required")
        self._handlers[action_type] = handler

    def unregister_handler(self, action_type: str) -> None:
        self._handlers.pop(action_type, None)

    def handler_types(self) -> List[str]:
        return sorted(self._handlers)

    def find_matching_workflows(
        self,
        workflows: List[dict],
        trigger_type: str,
        component_id: str | None = None,
        entity_id: str | None = None,
    ) -> List[dict]:
        wanted = normalize_trigger_type(trigger_type)
        matches = []
        for workflow in workflows or []:
            if not isinstance(workflow, dict) or not workflow.get("enabled"):
                continue
            trigger = workflow.get("trigger") if isinstance(workflow.get("trigger"), dict) else {}
            if normalize_trigger_type(trigger.get("type")) != wanted:
                continue
            if component_id and trigger.get("componentId") and trigger["componentId"] != component_id:
                continue
            if entity_id and trigger.get("entityId") and trigger["entityId"] != entity_id:
                continue
            matches.append(workflow)
        return matches

    async def execute_action(self, action: dict, context: dict, api: Any) -> dict:
        if not isinstance(action, dict):
            return {"success": False, "error": "Invalid action"}
        condition = action.get("condition")
        # conditional actions evaluate their own condition to pick a branch
        if condition and action.get("type") != "conditional":
            if not evaluate_condition(condition, context, self.fail_open):
                return {"success": True, "nextAction": "skip"}
        action_type = action.get("type")
        handler = self._handlers.get(action_type) if isinstance(action_type, str) else None
        if handler is None:
            return {"success": False, "error": f"Unknown action type: {action_type}"}
        return await handler(action, context, api, self)

    async def execute_workflow(self, workflow: dict, context: dict, api: Any) -> dict:
        if not isinstance(workflow, dict):
            return {"success": False, "workflowId": None, "actionsExecuted": 0, "results": [], "error": "Invalid workflow"}
        workflow_id = workflow.get("id")
        if not workflow.get("enabled"):
            return {
                "success": False,
                "workflowId": workflow_id,
                "actionsExecuted": 0,
                "results": [],
                "error": "Workflow is disabled",
            }
        on_error = workflow.get("onError") if isinstance(workflow.get("onError"), dict) else {}
        actions = workflow.get("actions") if isinstance(workflow.get("actions"), list) else []
        results: List[dict] = []
        for action in actions:
            action_id = action.get("id") if isinstance(action, dict) else None
            try:
                result = await self.execute_action(action, context, api)
            except Exception as exc:
                logger.exception("workflow_action_crashed workflow_id=%s action_id=%s", workflow_id, action_id)
                if on_error.get("notification"):
                    await _notify(api, on_error["notification"])
                results.append({"success": False, "error": str(exc) or exc.__class__.__name__})
                return {
                    "success": False,
                    "workflowId": workflow_id,
                    "actionsExecuted": len(results),
                    "results": results,
                    "error": str(exc) or exc.__class__.__name__,
                }
            results.append(result)
            if not result.get("success"):
                logger.warning(
                    "workflow_action_failed workflow_id=%s action_id=%s error=%s",
                    workflow_id,
                    action_id,
                    result.get("error"),
                )
                if on_error.get("action") == "stop":
                    break
            if result.get("nextAction") == "stop":
                break
        success = all(r.get("success") for r in results)
        logger.info(
            "workflow_executed workflow_id=%s actions=%s success=%s", workflow_id, len(results), success
        )
        return {"success": success, "workflowId": workflow_id, "actionsExecuted": len(results), "results": results}


async def _notify(api: Any, message: str) -> None:
    value = api.show_notification(message, "error")
    if inspect.isawaitable(value):
        await value
