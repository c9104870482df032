"""Command-line interface for devflow."""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import AppConfig, ConfigManager
from .deploy import DeployOptions, UnsupportedTargetError
from .gitops import GitCommandError, GitRepositoryManager
from .knowledge import KNOWLEDGE_TYPES
from .llm import LLMError, ProjectAdvisor, TextGenerationClient
from .orchestrator import WorkflowConfig, generate_report
from .security import generate_security_report
from .utils.logging import get_logger
from .workflow import DevWorkflow

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG_ERROR = 2

TARGET_CHOICES = ["netlify", "vercel", "github-pages"]

logger = get_logger(__name__)


@dataclass
class CLIContext:
    """Context captured from CLI arguments."""

    config_manager: ConfigManager
    config: AppConfig


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="devflow",
        description="Run build pipelines for JavaScript projects and deploy them.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to the JSON preferences file (default: .devflow/config.json).",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    pipeline_parser = subparsers.add_parser(
        "pipeline", help="Run install, lint, test, audit and build"
    )
    pipeline_parser.add_argument("project", help="Project directory")
    pipeline_parser.add_argument("--json", action="store_true", help="Print results as JSON")

    workflow_parser = subparsers.add_parser(
        "workflow", help="Run a configurable workflow described by a JSON file"
    )
    workflow_parser.add_argument("project", help="Project directory")
    workflow_parser.add_argument(
        "--workflow-file", "-w", required=True, help="JSON workflow configuration"
    )
    workflow_parser.add_argument("--report", type=str, default=None, help="Write a Markdown report here")
    workflow_parser.add_argument("--json", action="store_true", help="Print the result as JSON")

    subparsers.add_parser("prereqs", help="Check that node, npm and git are available")

    templates_parser = subparsers.add_parser("templates", help="List available templates")
    templates_parser.add_argument("--category", default=None, help="Only list this category")

    inject_parser = subparsers.add_parser("inject", help="Inject a template into a project")
    inject_parser.add_argument("template_id", help="Template id")
    inject_parser.add_argument("project", help="Project directory")
    inject_parser.add_argument(
        "--var", action="append", default=[], metavar="NAME=VALUE",
        help="Template variable (repeatable)"
    )

    deploy_parser = subparsers.add_parser("deploy", help="Deploy a built project")
    deploy_parser.add_argument("target", choices=TARGET_CHOICES, help="Hosting target")
    deploy_parser.add_argument("project", help="Project directory")
    deploy_parser.add_argument("--site-name", default=None, help="Netlify site / Vercel project name")
    deploy_parser.add_argument("--repo-url", default=None, help="Repository URL for GitHub Pages")
    deploy_parser.add_argument("--project-id", default=None, help="Id recorded in the history")

    history_parser = subparsers.add_parser("history", help="Show deployment history")
    history_parser.add_argument("--project-id", default=None, help="Only show this project")
    history_parser.add_argument("--limit", "-n", type=int, default=20, help="Entries to show")

    scan_parser = subparsers.add_parser("scan", help="Run a security scan")
    scan_parser.add_argument("project", help="Project directory")

    clone_parser = subparsers.add_parser("clone", help="Clone or update a repository")
    clone_parser.add_argument("--repo", required=True, help="Git repository URL")
    clone_parser.add_argument("--dest", default=None, help="Target directory")

    publish_parser = subparsers.add_parser("publish", help="Commit project changes and push them")
    publish_parser.add_argument("project", help="Project directory (a git checkout)")
    publish_parser.add_argument("--message", "-m", default="Update via devflow", help="Commit message")
    publish_parser.add_argument("--no-push", action="store_true", help="Commit only")

    knowledge_parser = subparsers.add_parser("knowledge", help="Search or extend the knowledge store")
    knowledge_parser.add_argument("--search", "-s", default=None, metavar="QUERY", help="Keyword to look for")
    knowledge_parser.add_argument(
        "--type", action="append", default=[], choices=list(KNOWLEDGE_TYPES), help="Only this item type (repeatable)"
    )
    knowledge_parser.add_argument("--limit", "-n", type=int, default=10, help="Results to show")
    knowledge_parser.add_argument("--learn", default=None, metavar="PROJECT", help="Record a project's layout")
    knowledge_parser.add_argument("--project-type", default="nodejs", help="Tag used with --learn")

    suggest_parser = subparsers.add_parser("suggest", help="Ask the LLM for enhancement ideas")
    suggest_parser.add_argument("project", help="Project directory")

    config_parser = subparsers.add_parser("config", help="Show, validate or update preferences")
    config_parser.add_argument("--validate", action="store_true", help="Check required settings")
    config_parser.add_argument(
        "--set", action="append", default=[], metavar="SECTION.KEY=VALUE",
        help="Update one setting (repeatable)"
    )

    return parser


def _build_context(args: argparse.Namespace) -> CLIContext:
    manager = ConfigManager(Path(args.config) if args.config else None)
    return CLIContext(config_manager=manager, config=manager.get())


def _parse_value(raw: str) -> Any:
    """Interpret `raw` as JSON when possible, else keep the string."""
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def _parse_assignments(pairs: List[str]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for pair in pairs:
        name, sep, raw = pair.partition("=")
        if not sep or not name:
            raise ValueError(f"Expected NAME=VALUE, got: {pair}")
        values[name.strip()] = raw
    return values


def handle_pipeline_command(args: argparse.Namespace, workflow: DevWorkflow) -> int:
    results = workflow.run_fixed_pipeline(args.project)
    if args.json:
        print(json.dumps([r.to_dict() for r in results], indent=2))
    else:
        for result in results:
            mark = "✅" if result.succeeded else "❌"
            print(f"{mark} {result.step_name} ({result.duration_ms} ms)")
            if result.error:
                print(f"   {result.error}")
    # the audit step is advisory; only the last result can be a blocking failure
    failed = bool(results) and not results[-1].succeeded
    return EXIT_FAILED if failed else EXIT_OK


def handle_workflow_command(args: argparse.Namespace, workflow: DevWorkflow) -> int:
    try:
        document = json.loads(Path(args.workflow_file).read_text(encoding="utf-8"))
        config = WorkflowConfig.from_dict(document)
    except (OSError, ValueError) as exc:
        print(f"❌ Invalid workflow configuration: {exc}")
        return EXIT_CONFIG_ERROR

    result = workflow.run_workflow(args.project, config)
    report = generate_report(result)
    if args.report:
        Path(args.report).write_text(report, encoding="utf-8")
        print(f"📄 Report written to {args.report}")
    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print(report)
    return EXIT_OK if result.succeeded else EXIT_FAILED


def handle_prereqs_command(workflow: DevWorkflow) -> int:
    report = workflow.check_prerequisites()
    for name, available in report.to_dict().items():
        print(f"{'✅' if available else '❌'} {name}")
    return EXIT_OK if report.ready else EXIT_FAILED


def handle_templates_command(args: argparse.Namespace, workflow: DevWorkflow) -> int:
    templates = workflow.list_templates(args.category)
    if not templates:
        print("📁 No templates found.")
        return EXIT_OK
    print(f"{'ID':<24} {'Category':<12} {'Type':<12} {'Name'}")
    print("-" * 72)
    for template in templates:
        print(f"{template.id:<24} {template.category:<12} {template.type:<12} {template.name}")
    return EXIT_OK


def handle_inject_command(args: argparse.Namespace, workflow: DevWorkflow) -> int:
    try:
        variables = _parse_assignments(args.var)
    except ValueError as exc:
        print(f"❌ {exc}")
        return EXIT_CONFIG_ERROR

    result = workflow.inject_template(args.template_id, args.project, variables)
    for path in result.injected_paths:
        print(f"  + {path}")
    for name in result.installed_dependencies:
        print(f"  + dependency {name}")
    for error in result.errors:
        print(f"  ❌ {error}")
    return EXIT_OK if result.succeeded else EXIT_FAILED


def handle_deploy_command(args: argparse.Namespace, workflow: DevWorkflow) -> int:
    options = DeployOptions(
        site_name=args.site_name,
        repo_url=args.repo_url,
        project_id=args.project_id or Path(args.project).resolve().name,
    )
    try:
        result = workflow.deploy(args.target, args.project, options)
    except UnsupportedTargetError as exc:
        print(f"❌ {exc}")
        return EXIT_CONFIG_ERROR
    print(generate_report(result))
    return EXIT_OK if result.succeeded else EXIT_FAILED


def handle_history_command(args: argparse.Namespace, workflow: DevWorkflow) -> int:
    entries = workflow.get_deployment_history(args.project_id)[: max(args.limit, 0)]
    if not entries:
        print("📁 No deployments recorded.")
        return EXIT_OK
    print(f"{'Status':<8} {'Target':<14} {'Project':<24} {'Time':<20} {'URL'}")
    print("-" * 100)
    for entry in entries:
        mark = "✅" if entry.result.succeeded else "❌"
        when = entry.recorded_at.isoformat()[:19].replace("T", " ")
        print(f"{mark:<8} {entry.target:<14} {entry.project_id:<24} {when:<20} {entry.result.url or ''}")
    return EXIT_OK


def handle_scan_command(args: argparse.Namespace, workflow: DevWorkflow) -> int:
    result = workflow.scan(args.project)
    print(generate_security_report(result))
    return EXIT_OK if result.passed else EXIT_FAILED


def handle_clone_command(args: argparse.Namespace, context: CLIContext) -> int:
    name = args.repo.rstrip("/").split("/")[-1].replace(".git", "")
    dest = Path(args.dest) if args.dest else Path(context.config.paths.projects_dir) / name
    try:
        result = GitRepositoryManager().clone_or_update(args.repo, dest)
    except GitCommandError as exc:
        print(f"❌ {exc}")
        return EXIT_FAILED
    print(f"✅ {dest} at {result.commit_sha}")
    return EXIT_OK


def handle_publish_command(args: argparse.Namespace, context: CLIContext) -> int:
    manager = GitRepositoryManager(username=context.config.github.username)
    try:
        result = manager.commit_and_push(Path(args.project), args.message, push=not args.no_push)
    except GitCommandError as exc:
        print(f"❌ {exc}")
        return EXIT_FAILED
    state = "committed" if result.committed else "nothing to commit"
    print(f"✅ {args.project}: {state} at {result.commit_sha}")
    return EXIT_OK


def handle_knowledge_command(args: argparse.Namespace, workflow: DevWorkflow) -> int:
    store = workflow.knowledge
    if store is None:
        print("❌ Knowledge store is not configured")
        return EXIT_CONFIG_ERROR

    if args.learn:
        item_id = store.learn_from_project(args.learn, args.project_type)
        if item_id is None:
            print(f"❌ No readable package.json in {args.learn}")
            return EXIT_FAILED
        print(f"✅ Recorded {item_id}")
        return EXIT_OK

    if args.search:
        results = store.search(args.search, args.type or None, args.limit)
        if not results:
            print("📁 No matching knowledge.")
            return EXIT_OK
        for result in results:
            print(f"{result.score:5.2f}  [{result.item.type}] {result.item.title} ({', '.join(result.matches)})")
        return EXIT_OK

    stats = store.get_stats()
    print(f"📚 {stats['total_items']} items")
    for item_type, count in sorted(stats["by_type"].items()):
        print(f"   {item_type}: {count}")
    return EXIT_OK


def handle_suggest_command(args: argparse.Namespace, context: CLIContext) -> int:
    try:
        client = TextGenerationClient(context.config.llm)
    except LLMError as exc:
        print(f"❌ {exc}")
        return EXIT_CONFIG_ERROR
    try:
        suggestions = ProjectAdvisor(client).suggest(args.project)
    except LLMError as exc:
        print(f"❌ {exc}")
        return EXIT_FAILED
    for suggestion in suggestions:
        print(f"[{suggestion.priority.upper()}] {suggestion.title} ({suggestion.type})")
        print(f"   {suggestion.description}")
    return EXIT_OK


def handle_config_command(args: argparse.Namespace, context: CLIContext) -> int:
    if args.set:
        partial: Dict[str, Any] = {}
        try:
            for key, raw in _parse_assignments(args.set).items():
                section, dot, field_name = key.partition(".")
                if not dot or not field_name:
                    raise ValueError(f"Expected SECTION.KEY, got: {key}")
                partial.setdefault(section, {})[field_name] = _parse_value(raw)
        except ValueError as exc:
            print(f"❌ {exc}")
            return EXIT_CONFIG_ERROR
        if not context.config_manager.save(partial):
            print("❌ Could not save configuration")
            return EXIT_CONFIG_ERROR
        print(f"✅ Saved {context.config_manager.path}")
        return EXIT_OK

    if args.validate:
        errors = context.config_manager.validate()
        for error in errors:
            print(f"❌ {error}")
        if errors:
            return EXIT_CONFIG_ERROR
        print("✅ Configuration is valid")
        return EXIT_OK

    shown = context.config.to_dict()
    if shown["github"].get("token"):
        shown["github"]["token"] = "***"
    if shown["llm"].get("api_key"):
        shown["llm"]["api_key"] = "***"
    print(json.dumps(shown, indent=2))
    return EXIT_OK


def dispatch_command(args: argparse.Namespace, workflow: Optional[DevWorkflow] = None) -> int:
    context = _build_context(args)

    if args.command == "config":
        return handle_config_command(args, context)
    if args.command == "clone":
        return handle_clone_command(args, context)
    if args.command == "publish":
        return handle_publish_command(args, context)
    if args.command == "suggest":
        return handle_suggest_command(args, context)

    logger.debug("Running command: %s", args.command)
    workflow = workflow or DevWorkflow.from_config(context.config)

    if args.command == "pipeline":
        return handle_pipeline_command(args, workflow)
    if args.command == "workflow":
        return handle_workflow_command(args, workflow)
    if args.command == "prereqs":
        return handle_prereqs_command(workflow)
    if args.command == "templates":
        return handle_templates_command(args, workflow)
    if args.command == "inject":
        return handle_inject_command(args, workflow)
    if args.command == "deploy":
        return handle_deploy_command(args, workflow)
    if args.command == "history":
        return handle_history_command(args, workflow)
    if args.command == "knowledge":
        return handle_knowledge_command(args, workflow)
    if args.command == "scan":
        return handle_scan_command(args, workflow)

    raise ValueError(f"Unsupported command: {args.command}")


def run_cli(argv: Optional[list[str]] = None, workflow: Optional[DevWorkflow] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        get_logger(level=logging.DEBUG)
    return dispatch_command(args, workflow)
