"""MCP server for stacksherpa.

Exposes provider recommendations, the catalog, the project profile and the
decision ledger to AI coding agents via the Model Context Protocol.

Usage:
    stacksherpa serve

Configure in Claude Code (~/.claude.json):
    {
      "mcpServers": {
        "stacksherpa": {
          "command": "stacksherpa",
          "args": ["serve"],
          "env": {"STACKSHERPA_PROJECT_DIR": "/path/to/project"}
        }
      }
    }
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any

import mcp.server.stdio
import mcp.types as types
from mcp.server import Server

from stacksherpa.activity import log_tool_call
from stacksherpa.categories import normalize_category
from stacksherpa.config import Config
from stacksherpa.errors import StacksherpaError
from stacksherpa.models import OUTCOMES
from stacksherpa.profile.gaps import detect_gaps
from stacksherpa.profile.summary import summarize_profile
from stacksherpa.taste.patterns import describe_pattern, filter_patterns_for_category
from stacksherpa.workspace import Workspace

logger = logging.getLogger(__name__)

RECENT_DECISIONS_LIMIT = 20
FAILURE_STAGES = ["setup", "build", "runtime", "quota", "auth", "platform"]

server = Server("stacksherpa")

# One workspace per process so the pattern cache spans tool calls
_workspace: Workspace | None = None


def _get_workspace() -> Workspace:
    global _workspace
    if _workspace is None:
        _workspace = Workspace.open(Config.load())
    return _workspace


def _json(data: Any) -> list[types.TextContent]:
    return [types.TextContent(type="text", text=json.dumps(data, indent=2, default=str))]


_OBJECT_NO_ARGS = {"type": "object", "properties": {}}


@server.list_tools()
async def list_tools() -> list[types.Tool]:
    return [
        types.Tool(
            name="recommend_provider",
            description=(
                "Recommend the best API provider for a category in this project. "
                "Scores every catalog provider against the project profile, past "
                "decisions and learned taste, and returns the pick, alternatives with "
                "tradeoffs, rationale, confidence and any open profile questions."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "category": {
                        "type": "string",
                        "description": 'The API category (e.g. "email", "payments", "auth")',
                    },
                },
                "required": ["category"],
            },
        ),
        types.Tool(
            name="get_providers",
            description=(
                "Get all providers for a category with pricing and known issues, plus "
                "the project profile, open questions and past decisions in the category."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "category": {"type": "string", "description": "The API category"},
                },
                "required": ["category"],
            },
        ),
        types.Tool(
            name="get_provider",
            description="Get detailed information about one provider, including past decisions.",
            inputSchema={
                "type": "object",
                "properties": {
                    "id": {
                        "type": "string",
                        "description": 'Provider ID (e.g. "stripe", "resend")',
                    },
                },
                "required": ["id"],
            },
        ),
        types.Tool(
            name="list_categories",
            description="List all API categories with provider counts.",
            inputSchema=_OBJECT_NO_ARGS,
        ),
        types.Tool(
            name="get_profile",
            description=(
                "Get the project's profile: effective (merged) values, global defaults, "
                "local overrides, per-field merge details and recent decisions."
            ),
            inputSchema=_OBJECT_NO_ARGS,
        ),
        types.Tool(
            name="update_project_profile",
            description=(
                "Update the project profile with surgical operations: set (overwrite), "
                "append (add to array) and remove (filter from array, or true to delete "
                "the key). Returns an audit trail of the changes."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "set": {
                        "type": "object",
                        "description": 'Dot-path keys to set (e.g. {"constraints.compliance": ["SOC2"]})',
                    },
                    "append": {
                        "type": "object",
                        "description": 'Dot-path keys to append to (e.g. {"preferences.avoidProviders": "SendGrid"})',
                    },
                    "remove": {
                        "type": "object",
                        "description": "Dot-path keys to remove from arrays, or true to delete the key",
                    },
                },
            },
        ),
        types.Tool(
            name="record_decision",
            description=(
                "Record an API selection decision. Written to the project's decision "
                "ledger and used by future recommendations across projects."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "api": {"type": "string", "description": 'The provider chosen (e.g. "Resend")'},
                    "category": {"type": "string", "description": 'The category (e.g. "email")'},
                    "outcome": {
                        "type": "string",
                        "enum": list(OUTCOMES),
                        "description": "How the integration went",
                    },
                    "context": {
                        "type": "string",
                        "description": 'Context for the decision (e.g. "high volume")',
                    },
                    "notes": {"type": "string", "description": "Notes about the experience"},
                    "notesPrivate": {
                        "type": "boolean",
                        "description": "If true, notes stay out of cross-project taste",
                    },
                },
                "required": ["api", "category", "outcome"],
            },
        ),
        types.Tool(
            name="report_outcome",
            description="Report how a recorded decision worked out. Updates the decision record.",
            inputSchema={
                "type": "object",
                "properties": {
                    "decisionId": {"type": "string", "description": "The decision ID"},
                    "success": {"type": "boolean", "description": "Whether the integration succeeded"},
                    "stage": {
                        "type": "string",
                        "enum": FAILURE_STAGES,
                        "description": "Where the failure occurred (if failed)",
                    },
                    "notes": {"type": "string", "description": "Notes about the experience"},
                },
                "required": ["decisionId", "success"],
            },
        ),
        types.Tool(
            name="get_patterns",
            description=(
                "Get taste patterns learned from decisions across projects, with "
                "confidence and evidence. Optionally filtered to one category."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "category": {"type": "string", "description": "Optional category filter"},
                },
            },
        ),
        types.Tool(
            name="manage_projects",
            description=(
                "Manage the project registry: list projects, update a project's name "
                "or sharing setting, remove a project, or prune missing directories."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "action": {"type": "string", "enum": ["list", "update", "remove", "prune"]},
                    "path": {"type": "string", "description": "Project path (update/remove)"},
                    "updates": {
                        "type": "object",
                        "properties": {
                            "name": {"type": "string"},
                            "shareToGlobalTaste": {"type": "boolean"},
                        },
                    },
                },
                "required": ["action"],
            },
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[types.TextContent]:
    start = time.time()
    result: list[types.TextContent] = []
    error: str | None = None
    try:
        result = _dispatch_tool(name, arguments or {})
        return result
    except StacksherpaError as e:
        error = str(e)
        result = [types.TextContent(type="text", text=f"Error: {e}")]
        return result
    except Exception as e:
        logger.exception(f"Tool {name} failed")
        error = str(e)
        result = [types.TextContent(type="text", text=f"Error: {e}")]
        return result
    finally:
        duration_ms = int((time.time() - start) * 1000)
        result_text = result[0].text if result else ""
        log_tool_call(name, arguments, result_text, error, duration_ms)


def _dispatch_tool(name: str, arguments: dict) -> list[types.TextContent]:
    """Route a tool call to the appropriate handler."""
    ws = _get_workspace()
    if name == "recommend_provider":
        return _handle_recommend(ws, arguments["category"])
    elif name == "get_providers":
        return _handle_get_providers(ws, arguments["category"])
    elif name == "get_provider":
        return _handle_get_provider(ws, arguments["id"])
    elif name == "list_categories":
        return _json(ws.catalog.get_categories())
    elif name == "get_profile":
        return _handle_get_profile(ws)
    elif name == "update_project_profile":
        result = ws.profiles.update_project_profile(
            ws.project_dir,
            set=arguments.get("set"),
            append=arguments.get("append"),
            remove=arguments.get("remove"),
        )
        return _json(result.to_dict())
    elif name == "record_decision":
        return _handle_record_decision(ws, arguments)
    elif name == "report_outcome":
        return _handle_report_outcome(
            ws,
            arguments["decisionId"],
            bool(arguments["success"]),
            arguments.get("stage"),
            arguments.get("notes"),
        )
    elif name == "get_patterns":
        return _handle_get_patterns(ws, arguments.get("category"))
    elif name == "manage_projects":
        return _handle_manage_projects(ws, arguments)
    else:
        return [types.TextContent(type="text", text=f"Unknown tool: {name}")]


def _handle_recommend(ws: Workspace, category: str) -> list[types.TextContent]:
    recommendation = ws.recommender.recommend(category, ws.project_dir)
    return [types.TextContent(type="text", text=recommendation.to_json())]


def _handle_get_providers(ws: Workspace, category: str) -> list[types.TextContent]:
    normalized = normalize_category(category)
    providers = ws.catalog.get_providers_by_category(normalized)
    effective = ws.profiles.load_effective(ws.project_dir).effective
    gaps = detect_gaps(effective, normalized)
    past = ws.ledger.experiences_for_category(normalized)

    return _json({
        "category": normalized,
        "providers": [p.to_dict() for p in providers],
        "profile": {
            "summary": summarize_profile(effective),
            "effective": effective.to_dict(),
            "gaps": [g.to_dict() for g in gaps],
        },
        "pastDecisions": [e.to_dict() for e in past],
    })


def _handle_get_provider(ws: Workspace, provider_id: str) -> list[types.TextContent]:
    provider = ws.catalog.get_provider_by_id(provider_id)
    if provider is None:
        return _json({"error": f"Provider not found: {provider_id}"})

    past = ws.ledger.experiences_for_api(provider.name)
    return _json({
        "provider": provider.to_dict(),
        "pastDecisions": [e.to_dict() for e in past],
    })


def _handle_get_profile(ws: Workspace) -> list[types.TextContent]:
    view = ws.profiles.load_effective(ws.project_dir)
    experiences = ws.ledger.experiences()
    return _json({
        "summary": summarize_profile(view.effective),
        **view.to_dict(),
        "recentDecisions": [e.to_dict() for e in experiences[:RECENT_DECISIONS_LIMIT]],
        "projectDir": str(ws.project_dir),
    })


def _handle_record_decision(ws: Workspace, arguments: dict) -> list[types.TextContent]:
    ws.registry.ensure_registered(ws.project_dir)
    decision = ws.ledger.record(
        ws.project_dir,
        api=arguments["api"],
        category=normalize_category(arguments["category"]),
        outcome=arguments["outcome"],
        context=arguments.get("context"),
        notes=arguments.get("notes"),
        notes_private=bool(arguments.get("notesPrivate", False)),
    )
    return _json({"recorded": True, "decisionId": decision.id})


def _handle_report_outcome(
    ws: Workspace,
    decision_id: str,
    success: bool,
    stage: str | None,
    notes: str | None,
) -> list[types.TextContent]:
    if ws.ledger.get(ws.project_dir, decision_id) is None:
        return _json({"recorded": False, "error": f"Decision not found: {decision_id}"})

    outcome_note = "; ".join(
        part for part in (
            notes,
            f"outcome: {'success' if success else 'failure'}",
            f"stage: {stage}" if stage else None,
        ) if part
    )
    ws.ledger.update(
        ws.project_dir,
        decision_id,
        outcome="positive" if success else "negative",
        notes=outcome_note,
    )
    return _json({"recorded": True, "decisionId": decision_id})


def _handle_get_patterns(ws: Workspace, category: str | None) -> list[types.TextContent]:
    taste = ws.patterns.compute()
    patterns = taste.patterns
    if category:
        patterns = filter_patterns_for_category(patterns, normalize_category(category))

    return _json({
        "computedAt": taste.computed_at.isoformat(),
        "decisionCount": len(taste.experiences),
        "patterns": [
            {**p.to_dict(), "description": describe_pattern(p)} for p in patterns
        ],
    })


def _handle_manage_projects(ws: Workspace, arguments: dict) -> list[types.TextContent]:
    action = arguments["action"]
    path = arguments.get("path")

    if action == "list":
        return _json({"projects": [p.to_dict() for p in ws.registry.get_all()]})
    if action == "update" and path:
        updates = arguments.get("updates") or {}
        share = updates.get("shareToGlobalTaste")
        updated = ws.registry.update(
            path,
            name=updates.get("name"),
            share=None if share is None else bool(share),
        )
        return _json({
            "success": updated is not None,
            "project": updated.to_dict() if updated else None,
        })
    if action == "remove" and path:
        return _json({"success": ws.registry.remove(path)})
    if action == "prune":
        pruned = ws.registry.prune_stale()
        return _json({"pruned": pruned, "count": len(pruned)})

    return _json({"error": "Invalid action or missing parameters"})


async def main() -> None:
    async with mcp.server.stdio.stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options(),
        )


if __name__ == "__main__":
    import asyncio
    asyncio.run(main())
