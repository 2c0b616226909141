"""MCP Server exposing workspace recovery as tools."""

import argparse
import logging
from typing import Any, Dict, List, Optional

from fastmcp import FastMCP

from wsrecovery.container import get_container
from wsrecovery.domains.phase_execution import PhaseStatus
from wsrecovery.domains.shared import (
    ExportFormat,
    RecoveryError,
    StrategyName,
    TimeframeName,
)
from wsrecovery.models.config_models import RecoveryConfig
from wsrecovery.service import RecoveryService

logger = logging.getLogger(__name__)

# Configuration the tools resolve their container from; set by main()
_config: Optional[RecoveryConfig] = None


def _create_mcp_server() -> FastMCP:
    """Create and configure the FastMCP server.

    Returns:
        Configured FastMCP server instance.
    """
    return FastMCP(
        "Workspace Recovery MCP Server",
        instructions=(
            "Analyze the health of a monorepo's packages, plan and run phased "
            "recoveries (repair, rebuild, reset), and query recovery analytics. "
            "Start with analyze_workspace, then recover_module or plan_recovery "
            "followed by execute_phase."
        ),
    )


mcp = _create_mcp_server()


def configure(config: Optional[RecoveryConfig]) -> None:
    """Set the configuration tools resolve their workspace from."""
    global _config
    _config = config


def _get_service() -> RecoveryService:
    return RecoveryService(get_container(_config))


def _error(e: Exception) -> Dict[str, Any]:
    return {"success": False, "error": str(e), "error_type": type(e).__name__}


@mcp.tool(
    name="analyze_workspace",
    description="Assess the health of workspace modules and recommend recovery actions.",
)
async def analyze_workspace(
    modules: Optional[List[str]] = None,
    include_recommendations: bool = True,
) -> Dict[str, Any]:
    """Return the workspace health with per-module states and a summary."""
    service = _get_service()
    try:
        health = await service.analyze_workspace(modules, include_recommendations)
    except RecoveryError as e:
        return _error(e)
    return {
        "success": True,
        "workspace_health": health.to_dict(),
        "summary": health.module_summary(),
    }


@mcp.tool(
    name="validate_configuration",
    description="Validate the workspace-level manifest, type configuration and package layout.",
)
async def validate_configuration() -> Dict[str, Any]:
    service = _get_service()
    report = service.validate_configuration()
    return {"success": True, "configuration": report.to_dict()}


@mcp.tool(
    name="plan_recovery",
    description=(
        "Create a phased recovery session for one module without running it. "
        "Use execute_phase to run its phases one at a time."
    ),
)
async def plan_recovery(
    module_id: str,
    strategy: Optional[StrategyName] = None,
) -> Dict[str, Any]:
    service = _get_service()
    try:
        session = await service.plan_recovery(module_id, strategy)
    except RecoveryError as e:
        return _error(e)
    return {"success": True, "session": session.to_dict()}


@mcp.tool(
    name="recover_module",
    description=(
        "Recover one module: plan a session for the strategy (or the analyzer's "
        "recommendation), run its phases in order and record the outcome."
    ),
)
async def recover_module(
    module_id: str,
    strategy: Optional[StrategyName] = None,
    target_health_score: Optional[int] = None,
    dry_run: Optional[bool] = None,
    parallel: bool = False,
) -> Dict[str, Any]:
    service = _get_service()
    try:
        context = service.config.recovery_context(
            target_health_score=target_health_score, dry_run=dry_run,
        )
        run = await service.recover_module(module_id, strategy, context, parallel=parallel)
    except (RecoveryError, ValueError) as e:
        return _error(e)
    return {"success": True, "recovery": run.to_dict()}


@mcp.tool(
    name="recover_modules",
    description=(
        "Recover several modules (default: every module that needs recovery), "
        "core and foundation modules first, sequentially or in parallel batches."
    ),
)
async def recover_modules(
    module_ids: Optional[List[str]] = None,
    strategy: StrategyName = "repair",
    dry_run: Optional[bool] = None,
    parallel: bool = False,
    fail_fast: bool = False,
) -> Dict[str, Any]:
    service = _get_service()
    try:
        results = await service.recover_modules(
            module_ids,
            strategy,
            service.config.recovery_context(dry_run=dry_run),
            parallel=parallel,
            fail_fast=fail_fast,
        )
    except RecoveryError as e:
        return _error(e)
    return {
        "success": True,
        "modules_attempted": len(results),
        "modules_recovered": sum(1 for r in results.values() if r.success),
        "results": {m: r.to_dict() for m, r in results.items()},
    }


@mcp.tool(
    name="execute_phase",
    description="Execute one phase of a planned recovery session.",
)
async def execute_phase(
    session_id: str,
    phase_id: str,
    parallel: bool = False,
    max_concurrency: Optional[int] = None,
    force_execution: bool = False,
    skip_validation: bool = False,
    dry_run: Optional[bool] = None,
    timeout_ms: Optional[int] = None,
) -> Dict[str, Any]:
    service = _get_service()
    try:
        options = service.config.execution_options(
            parallel=parallel,
            max_concurrency=max_concurrency,
            force_execution=force_execution,
            skip_validation=skip_validation,
            dry_run=dry_run,
            timeout_ms=timeout_ms,
        )
        result = await service.execute_phase(session_id, phase_id, options)
    except (RecoveryError, ValueError) as e:
        return _error(e)
    return {
        "success": result.status == PhaseStatus.COMPLETED,
        "execution": result.to_dict(),
        "progress": service.get_progress(session_id),
    }


@mcp.tool(
    name="cancel_phase",
    description="Request cancellation of a running phase execution.",
)
async def cancel_phase(execution_id: str) -> Dict[str, Any]:
    result = _get_service().cancel_phase(execution_id)
    return {"success": result.cancelled, **result.to_dict()}


@mcp.tool(
    name="get_progress",
    description="Report the progress of a recovery session and its phases.",
)
async def get_progress(session_id: str) -> Dict[str, Any]:
    try:
        progress = _get_service().get_progress(session_id)
    except RecoveryError as e:
        return _error(e)
    return {"success": True, "progress": progress}


@mcp.tool(
    name="predict_recovery",
    description="Predict success rate, duration and improvement of recovering a module with a strategy.",
)
async def predict_recovery(module_id: str, strategy: StrategyName = "repair") -> Dict[str, Any]:
    try:
        prediction = _get_service().predict_recovery(module_id, strategy)
    except RecoveryError as e:
        return _error(e)
    return {"success": True, "prediction": prediction.to_dict()}


@mcp.tool(
    name="get_system_report",
    description="Summarize recorded recovery operations over a timeframe.",
)
async def get_system_report(timeframe: TimeframeName = "week") -> Dict[str, Any]:
    report = await _get_service().get_system_report(timeframe)
    return {"success": True, "report": report.to_dict()}


@mcp.tool(
    name="get_module_profile",
    description="Return the accumulated recovery history profile of one module.",
)
async def get_module_profile(module_id: str) -> Dict[str, Any]:
    try:
        profile = _get_service().get_module_profile(module_id)
    except RecoveryError as e:
        return _error(e)
    if profile is None:
        return {
            "success": False,
            "error": f"No recovery operations recorded for module '{module_id}'.",
        }
    return {"success": True, "profile": profile.to_dict()}


@mcp.tool(
    name="generate_report",
    description="Build a recovery report from a template and write it as JSON under the reports directory.",
)
async def generate_report(
    template_id: str = "comprehensive",
    timeframe: TimeframeName = "week",
    title: Optional[str] = None,
) -> Dict[str, Any]:
    try:
        path = await _get_service().generate_report(template_id, timeframe, title)
    except RecoveryError as e:
        return _error(e)
    return {"success": True, "report_path": str(path)}


@mcp.tool(
    name="export_analytics",
    description="Export the recovery operation log and module profiles as one JSON document.",
)
async def export_analytics(export_format: ExportFormat = "json") -> Dict[str, Any]:
    service = _get_service()
    return {
        "success": True,
        "format": export_format,
        "data": service.export_analytics(export_format),
        "stats": service.get_system_stats(),
    }


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Workspace recovery MCP server."
    )
    parser.add_argument(
        "--workspace",
        dest="workspace",
        help="Workspace root to analyze and recover (default: WSRECOVERY_WORKSPACE or '.').",
    )
    parser.add_argument(
        "--config",
        dest="config_path",
        help="YAML configuration file; command-line options take precedence.",
    )
    parser.add_argument(
        "--dry-run",
        dest="dry_run",
        action="store_const",
        const=True,
        help="Simulate every recovery action with nominal results.",
    )
    parser.add_argument(
        "--transport",
        dest="transport",
        choices=["stdio", "http", "sse"],
        help="Transport to use for the MCP server (default: stdio).",
    )
    parser.add_argument(
        "--host",
        dest="host",
        help="Host/interface for HTTP transport (default 127.0.0.1).",
    )
    parser.add_argument(
        "--port",
        dest="port",
        type=int,
        help="Port for HTTP transport (default 8000).",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        help="Log level for the MCP server (e.g., INFO, DEBUG).",
    )
    return parser


def build_config(args: argparse.Namespace) -> RecoveryConfig:
    """Resolve configuration: YAML file or environment, then command-line overrides."""
    if args.config_path:
        config = RecoveryConfig.from_yaml(args.config_path)
    else:
        config = RecoveryConfig.from_env()
    if args.workspace:
        config.update(WORKSPACE=args.workspace)
    if args.dry_run:
        config.update(DRY_RUN=True)
    if args.log_level:
        config.update(LOG_LEVEL=args.log_level)
    errors = config.validate()
    if errors:
        raise SystemExit("Invalid configuration: " + "; ".join(errors))
    return config


def main(argv: Optional[List[str]] = None) -> None:
    """Start the workspace recovery MCP server."""

    parser = _build_arg_parser()
    args = parser.parse_args(argv)
    config = build_config(args)

    logging.basicConfig(level=getattr(logging, config.LOG_LEVEL, logging.INFO))
    configure(config)
    logger.info(
        "Starting workspace recovery server for %s (dry_run=%s)",
        config.WORKSPACE, config.DRY_RUN,
    )

    try:
        run_kwargs: Dict[str, Any] = {}

        transport = args.transport or "stdio"
        run_kwargs["transport"] = transport

        if transport != "stdio":
            if args.host:
                run_kwargs["host"] = args.host
            if args.port:
                run_kwargs["port"] = args.port

        mcp.run(**run_kwargs)
    except KeyboardInterrupt:
        logger.info("Workspace recovery server interrupted by user")


if __name__ == "__main__":
    main()
