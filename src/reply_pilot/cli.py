"""Command-line entry point for Reply Pilot."""

from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path

from reply_pilot.core import (
    AppSettings,
    ConfigurationError,
    ReplyPilotError,
    ServiceContainer,
    configure_logging,
    load_app_settings,
    require_runtime,
)
from reply_pilot.pipeline import LocalWorkflowExecutor, PipelineStages, TriggerHandler
from reply_pilot.routing import AppConfig, local_part, resolve_persona
from reply_pilot.services import (
    CONFIG_LOADER,
    EXECUTOR,
    MAIL_TRANSPORT,
    STAGES,
    TRIGGER,
    build_container,
)
from reply_pilot.transport import ConsoleMailTransport


def build_parser() -> argparse.ArgumentParser:
    """Create and configure the CLI argument parser."""
    parser = argparse.ArgumentParser(description="Reply Pilot mail autoresponder")
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Path to a .env file containing configuration overrides.",
    )
    subcommands = parser.add_subparsers(dest="command")
    subcommands.add_parser("info", help="Show the effective configuration.")
    subcommands.add_parser(
        "check-config", help="Load and validate the persona configuration."
    )

    resolve = subcommands.add_parser(
        "resolve", help="Show which persona answers a recipient address."
    )
    resolve.add_argument("address")

    process = subcommands.add_parser(
        "process", help="Run the whole pipeline for a local .eml file."
    )
    process.add_argument("eml", type=Path)

    trigger = subcommands.add_parser(
        "trigger", help="Simulate an object-created notification."
    )
    trigger.add_argument("--bucket", required=True)
    trigger.add_argument("--key", required=True, help="URL-encoded object key.")

    for sub in (process, trigger):
        sub.add_argument(
            "--dry-run",
            action="store_true",
            help="Log the reply instead of delivering it.",
        )
        sub.add_argument(
            "--no-wait",
            action="store_true",
            help="Skip the randomized delay before sending.",
        )
    return parser


def execute(args: argparse.Namespace, settings: AppSettings) -> int:
    """Execute the requested CLI command and return the exit status."""
    command = args.command or "info"
    try:
        if command == "info":
            _print_info(settings)
            return 0
        require_runtime(settings.runtime)
        container = build_container(settings)
        if command == "check-config":
            return _check_config(container)
        if command == "resolve":
            return _resolve(container, args.address)
        _apply_run_options(container, settings, args)
        if command == "process":
            return _process(container, args.eml)
        return _trigger(container, args.bucket, args.key)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}")
        return 2
    except (ReplyPilotError, OSError) as exc:
        print(f"{command} failed: {exc}")
        return 1


def main() -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()

    settings = load_app_settings(env_file=args.env_file)
    configure_logging(settings.logging)
    raise SystemExit(execute(args, settings))


def _print_info(settings: AppSettings) -> None:
    runtime = settings.runtime
    print("Reply Pilot")
    print(f"Environment: {runtime.environment or '(unset)'}")
    print(f"Config location: {runtime.config_location or '(unset)'}")
    print(f"Secret name: {runtime.secret_name or '(unset)'}")
    print(f"Workflow: {runtime.workflow_id or '(unset)'}")
    print(f"Object store root: {settings.storage.root}")
    print(f"Completion endpoint: {settings.completion.base_url}")
    print(f"SMTP host: {settings.smtp.host or '(unset)'}")


def _check_config(container: ServiceContainer) -> int:
    config: AppConfig = container.resolve(CONFIG_LOADER)()
    print(f"Personas: {', '.join(sorted(config.personas)) or '(none)'}")
    print(f"Global delay: {config.delay.minimum}-{config.delay.maximum}s")
    print(f"Persona delay overrides: {config.persona_delay_overrides}")
    return 0


def _resolve(container: ServiceContainer, address: str) -> int:
    config: AppConfig = container.resolve(CONFIG_LOADER)()
    key = local_part(address)
    persona = resolve_persona(config, address)
    name = key if key in config.personas else "default"
    print(f"Persona: {name}")
    print(f"Model: {persona.model or '(default)'}")
    print(f"Signature: {persona.signature}")
    return 0


def _apply_run_options(
    container: ServiceContainer, settings: AppSettings, args: argparse.Namespace
) -> None:
    if args.dry_run:
        container.provide(MAIL_TRANSPORT, ConsoleMailTransport())
    if args.no_wait:
        container.register(
            EXECUTOR,
            lambda c: LocalWorkflowExecutor(
                c.resolve(STAGES),
                sleep=_skip_wait,
                timeout_seconds=settings.executor.timeout_seconds,
            ),
        )


async def _skip_wait(seconds: float) -> None:
    del seconds


def _process(container: ServiceContainer, eml_path: Path) -> int:
    stages: PipelineStages = container.resolve(STAGES)
    executor: LocalWorkflowExecutor = container.resolve(EXECUTOR)
    state = stages.parse(eml_path.read_bytes())
    print(f"Replying to {state.parsed_mail.sender} in {state.wait_seconds}s")
    outcome = asyncio.run(executor.execute(state))
    print(
        json.dumps(
            {"phase": outcome.phase.value, "state": outcome.state.to_payload()},
            ensure_ascii=False,
            indent=2,
        )
    )
    return 0 if outcome.ok else 1


def _trigger(container: ServiceContainer, bucket: str, key: str) -> int:
    handler: TriggerHandler = container.resolve(TRIGGER)
    event = {"Records": [{"s3": {"bucket": {"name": bucket}, "object": {"key": key}}}]}
    response = handler.handle(event)
    print(json.dumps(response.to_dict(), ensure_ascii=False, indent=2))
    return 0 if response.status_code == 200 else 1


if __name__ == "__main__":
    main()
