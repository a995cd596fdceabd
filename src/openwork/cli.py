"""CLI for openwork: providers, doctor, run and plan commands."""

import argparse
import asyncio
import platform
import sys
from importlib.metadata import version as pkg_version

from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.prompt import Confirm, Prompt
from rich.table import Table

from .config import Config, load_config
from .errors import ConfigurationError
from .logging_config import setup_logging
from .orchestrator import AgentOrchestrator, PlanModePhase, PlanModeWorkflow
from .plans.models import ExecutionPlan
from .providers import SUPPORTED_PROVIDERS, create_adapter, get_supported_models
from .providers.base import BaseProviderAdapter
from .providers.types import AgentMode
from .tasks.models import ProgressUpdate
from .visualizer import (
	format_duration,
	render_clarification,
	render_execution_plan,
	render_progress_summary,
	render_task_tree,
)

console = Console()


def _build_config(args: argparse.Namespace) -> Config:
	config = load_config()
	if getattr(args, "provider", None):
		config.provider = args.provider
		config.model = None
	if getattr(args, "model", None):
		config.model = args.model
	if getattr(args, "mode", None):
		config.mode = args.mode
	if getattr(args, "approve", False):
		config.plan_approval_required = True
	setup_logging(level="DEBUG" if getattr(args, "verbose", False) else config.log_level, log_dir=config.log_dir)
	return config


def _build_adapter(config: Config) -> BaseProviderAdapter:
	adapter = create_adapter(config.provider, config.adapter_config())
	adapter.ensure_configured()
	return adapter


def cmd_providers(args: argparse.Namespace) -> None:
	"""List providers, whether they are configured, and their models."""
	config = load_config()

	table = Table(title="Providers")
	table.add_column("Id", style="bold")
	table.add_column("Name")
	table.add_column("Configured")
	table.add_column("Models", style="dim")

	for info in SUPPORTED_PROVIDERS:
		adapter = create_adapter(info.id, config.adapter_config(info.id))
		configured = "[green]yes[/green]" if adapter.is_configured() else "[red]no[/red]"
		if not info.requires_api_key:
			configured = f"[green]local[/green] ({getattr(adapter, 'host', '')})"
		marker = " *" if info.id.value == config.provider else ""
		table.add_row(info.id.value + marker, info.name, configured, ", ".join(get_supported_models(info.id)))

	console.print(table)
	console.print("[dim]* active provider[/dim]")


async def _check_providers(config: Config) -> list[tuple[str, str, bool]]:
	results = []
	for info in SUPPORTED_PROVIDERS:
		adapter = create_adapter(info.id, config.adapter_config(info.id))
		if not adapter.is_configured():
			results.append((info.id.value, "not configured", False))
			continue
		ok = await adapter.validate_credential()
		results.append((info.id.value, "ok" if ok else "credential rejected or unreachable", ok))
		close = getattr(adapter, "aclose", None)
		if close is not None:
			await close()
	return results


def cmd_doctor(args: argparse.Namespace) -> None:
	"""Health check - verify installation, configuration and provider access."""
	print("openwork doctor")
	print(f"{'=' * 40}")

	config = load_config()
	issues: list[str] = []

	py_ver = f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
	print(f"  Python:       {py_ver}")
	print(f"  Platform:     {platform.system()} {platform.machine()}")
	print()

	print("  Core deps:")
	core_deps = ["pydantic", "platformdirs", "python-dotenv", "rich", "anthropic", "openai", "httpx"]
	for dep in core_deps:
		try:
			dep_ver = pkg_version(dep)
			print(f"    {dep:22s} {dep_ver}")
		except Exception:
			print(f"    {dep:22s} NOT INSTALLED")
			issues.append(f"{dep} package not installed")
	print()

	print("  Config:")
	print(f"    config dir:          {config.config_dir}")
	print(f"    provider:            {config.provider}")
	print(f"    mode:                {config.mode}")
	print()

	print("  Providers:")
	for provider, status, ok in asyncio.run(_check_providers(config)):
		print(f"    {provider:22s} {status}")
		if not ok and provider == config.provider:
			issues.append(f"active provider {provider}: {status}")

	print()
	if issues:
		print(f"  {len(issues)} issue(s) found:")
		for issue in issues:
			print(f"    - {issue}")
		sys.exit(1)
	else:
		print("  All checks passed.")


async def _run(args: argparse.Namespace, config: Config) -> bool:
	async def approve(plan: ExecutionPlan) -> bool:
		render_execution_plan(plan, console)
		return Confirm.ask("Approve this plan?", default=True)

	orchestrator = AgentOrchestrator(
		config=config.session_config(),
		adapter=_build_adapter(config),
		on_plan_created=approve,
	)
	if args.context:
		orchestrator.add_context_files(args.context)

	def report(update: ProgressUpdate) -> None:
		task = orchestrator.get_task(update.task_id)
		label = task.description if task else update.task_id
		message = f" - {update.message}" if update.message else ""
		console.print(f"[dim]{update.progress:3d}%[/dim] \\[{update.status.value}] {escape(label[:60] + message)}")

	orchestrator.on_progress(report)

	with console.status("Planning..."):
		tree = await orchestrator.plan_task(args.request)
	render_task_tree(tree, console)

	result = await orchestrator.execute_task(tree.root_id)
	console.print()
	render_task_tree(tree, console)
	render_progress_summary(orchestrator.get_progress(), console)

	if result.success:
		took = format_duration(result.duration or 0.0)
		console.print(f"[green]Done[/green] in {took}")
		if result.output:
			console.print(Markdown(result.output))
	else:
		console.print(f"[red]Failed:[/red] {escape(result.error or '')}")
	return result.success


def cmd_run(args: argparse.Namespace) -> None:
	"""Plan a request into subtasks and execute them."""
	config = _build_config(args)
	try:
		ok = asyncio.run(_run(args, config))
	except ConfigurationError as e:
		console.print(f"[red]{e}[/red]")
		sys.exit(2)
	sys.exit(0 if ok else 1)


async def _plan(args: argparse.Namespace, config: Config) -> bool:
	adapter = _build_adapter(config)
	workflow = PlanModeWorkflow(
		adapter,
		on_progress=lambda step, message: console.print(f"[dim]{step.id}[/dim] {step.status.value} {escape(message or '')}"),
		on_artifact=lambda artifact: console.print(f"[cyan]Artifact:[/cyan] {escape(artifact.name)} ({artifact.type})"),
	)

	with console.status("Thinking..."):
		state = await workflow.start_task(args.request)

	while True:
		if state.phase == PlanModePhase.CLARIFYING and state.clarification:
			render_clarification(state.clarification, console)
			answer = Prompt.ask("Answer").strip()
			shortcuts = {
				(o.shortcut or str(i)): o.label
				for i, o in enumerate(state.clarification.options, start=1)
			}
			with console.status("Thinking..."):
				if answer.lower() == "skip" and state.clarification.allow_skip:
					state = await workflow.skip_clarification()
				else:
					state = await workflow.respond_to_clarification(shortcuts.get(answer, answer))

		elif state.phase == PlanModePhase.AWAITING_APPROVAL and state.plan:
			render_execution_plan(state.plan, console)
			if Confirm.ask("Approve this plan?", default=True):
				state = await workflow.approve_plan()
			else:
				feedback = Prompt.ask("What should change?")
				with console.status("Revising..."):
					state = await workflow.reject_plan(feedback)

		else:
			break

	if state.plan:
		render_execution_plan(state.plan, console)
	if state.phase == PlanModePhase.COMPLETED:
		console.print("[green]Plan completed[/green]")
		return True
	if state.phase == PlanModePhase.FAILED:
		console.print(f"[red]Failed:[/red] {escape(state.error or '')}")
		return False

	# Provider answered without proposing anything structured
	last = workflow.history[-1].content if workflow.history else ""
	console.print(Markdown(last))
	return True


def cmd_plan(args: argparse.Namespace) -> None:
	"""Interactive plan-mode session: clarify, approve, execute."""
	config = _build_config(args)
	try:
		ok = asyncio.run(_plan(args, config))
	except ConfigurationError as e:
		console.print(f"[red]{e}[/red]")
		sys.exit(2)
	sys.exit(0 if ok else 1)


def _add_provider_args(parser: argparse.ArgumentParser) -> None:
	parser.add_argument("--provider", choices=[p.id.value for p in SUPPORTED_PROVIDERS], help="Provider to use")
	parser.add_argument("--model", type=str, default=None, help="Model id (default: provider default)")
	parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")


def main() -> None:
	"""CLI entry point."""
	parser = argparse.ArgumentParser(
		prog="openwork",
		description="Plan, approve and execute tasks with interchangeable AI providers",
	)
	subparsers = parser.add_subparsers(dest="command")

	# providers
	providers_parser = subparsers.add_parser("providers", help="List providers and models")
	providers_parser.set_defaults(func=cmd_providers)

	# doctor
	doctor_parser = subparsers.add_parser("doctor", help="Health check")
	doctor_parser.set_defaults(func=cmd_doctor)

	# run
	run_parser = subparsers.add_parser("run", help="Plan a request into subtasks and execute them")
	run_parser.add_argument("request", help="What to do")
	run_parser.add_argument("--mode", choices=[m.value for m in AgentMode], default=None, help="Agent mode per subtask")
	run_parser.add_argument("--approve", action="store_true", help="Require plan approval")
	run_parser.add_argument("--context", nargs="*", default=[], help="Context file references")
	_add_provider_args(run_parser)
	run_parser.set_defaults(func=cmd_run)

	# plan
	plan_parser = subparsers.add_parser("plan", help="Interactive plan-mode session")
	plan_parser.add_argument("request", help="What to do")
	_add_provider_args(plan_parser)
	plan_parser.set_defaults(func=cmd_plan)

	args = parser.parse_args()

	if not args.command:
		parser.print_help()
		sys.exit(1)

	args.func(args)


if __name__ == "__main__":
	main()
