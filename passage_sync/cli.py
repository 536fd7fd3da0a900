"""Command line interface for passage-sync.

Commands:
- register / unregister: Link a configured repo to an existing agent
- status: Show registered agents and their sync state
- sync: Push changed files to the agent's archival memory
- watch: Poll repos and sync whenever HEAD moves
- reconcile: Compare local state with the server, optionally repairing drift
- ask: Ask a repo's agent a question
- memory: Show or update the agent's core memory blocks
"""

import logging
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated, Optional

import cyclopts
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from passage_sync.answer_cache import InMemoryAnswerCache
from passage_sync.ask import ask_agent
from passage_sync.config import (
    DEFAULT_CONFIG_PATH,
    DEFAULT_STATE_PATH,
    AppConfig,
    RepoConfig,
    load_config,
)
from passage_sync.core.ask_routing import parse_ask_routing_mode
from passage_sync.core.passage_map import (
    AgentState,
    AppState,
    add_agent_to_state,
    passage_count,
    remove_agent_from_state,
    update_agent_fields,
    update_passage_map,
)
from passage_sync.drift import fix_reconcile_drift, reconcile_agent
from passage_sync.exceptions import PassageSyncError, StateError
from passage_sync.file_collector import (
    collect_file,
    collect_files,
    is_indexable,
    to_repo_relative,
)
from passage_sync.git import changed_files_since, head_commit
from passage_sync.provider.admin import BLOCK_LABELS, get_core_memory
from passage_sync.provider.base import AgentProvider, CoreMemoryBlock
from passage_sync.provider.letta import LettaProvider
from passage_sync.state_store import load_state, save_state
from passage_sync.sync import SyncResult, format_sync_log, should_sync, sync_repo

logger = logging.getLogger(__name__)

app = cyclopts.App(
    name="passage-sync",
    help="Keep repository agents' archival memory in sync with source trees",
)

ConfigOption = Annotated[Path, cyclopts.Parameter(help="Path to config.yaml")]
StateOption = Annotated[Path, cyclopts.Parameter(help="Path to state.json")]
VerboseOption = Annotated[bool, cyclopts.Parameter(help="Enable debug logging")]

DEFAULT_WATCH_INTERVAL = 30.0


def _get_console() -> Console:
    """Get a Rich console for output."""
    return Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _fail(console: Console, message: str) -> None:
    console.print(f"[red]Error: {escape(message)}[/red]")
    sys.exit(1)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _create_provider(config: AppConfig) -> LettaProvider:
    return LettaProvider(base_url=config.letta.base_url, token=config.letta.token)


def _require_agent(state: AppState, repo_name: str) -> AgentState:
    agent = state.agents.get(repo_name)
    if agent is None:
        raise StateError(
            f"No agent registered for {repo_name}. "
            f"Run 'passage-sync register {repo_name} <agent-id>' first."
        )
    return agent


def _select_repos(state: AppState, repo: str | None) -> list[str]:
    if repo:
        _require_agent(state, repo)
        return [repo]
    return sorted(state.agents)


def _all_files(repo: RepoConfig, agent: AgentState) -> list[str]:
    current = {info.path for info in collect_files(repo)}
    return sorted(current | set(agent.passages))


def _files_to_sync(repo: RepoConfig, agent: AgentState, full: bool) -> list[str]:
    """Work out which repo-relative paths a sync must touch.

    A first sync, or a forced full one, covers every indexable file plus
    every file already in the passage map so that stale entries are dropped.
    The same full set is used when git can no longer diff against the last
    sync commit, so no change between it and HEAD is lost.
    """
    if full or agent.last_sync_commit is None:
        return _all_files(repo, agent)

    git_paths = changed_files_since(repo.path, agent.last_sync_commit)
    if git_paths is None:
        logger.warning(
            f"[{repo.name}] Cannot diff against {agent.last_sync_commit[:7]}, "
            f"re-indexing every file"
        )
        return _all_files(repo, agent)

    changed = []
    for git_path in git_paths:
        rel_path = to_repo_relative(git_path, repo)
        if rel_path is None:
            continue
        if is_indexable(rel_path, repo) or rel_path in agent.passages:
            changed.append(rel_path)
    return changed


def sync_one(
    provider: AgentProvider,
    config: AppConfig,
    state: AppState,
    repo_name: str,
    full: bool = False,
) -> tuple[AppState, SyncResult | None]:
    """Sync one registered repo and return the updated state.

    Returns:
        Tuple of (new state, sync result). The result is None when the repo
        was already up to date.

    Raises:
        PassageSyncError: If the repo is not configured or registered, HEAD
            cannot be read, or a provider call fails
    """
    repo = config.get_repo(repo_name)
    agent = _require_agent(state, repo_name)

    head = head_commit(repo.path)
    if head is None:
        raise PassageSyncError(f"Cannot determine HEAD commit of {repo.path}")
    if not full and not should_sync(agent.last_sync_commit, head):
        logger.debug(f"[{repo_name}] Already at {head[:7]}")
        return state, None

    result = sync_repo(
        provider,
        agent,
        _files_to_sync(repo, agent, full),
        lambda rel_path: collect_file(repo, rel_path),
        head,
        chunk_size=config.defaults.chunk_size,
        concurrency=config.defaults.sync_concurrency,
        full_reindex_threshold=config.defaults.full_reindex_threshold,
    )

    state = update_passage_map(state, repo_name, result.passages)
    updates = {"last_sync_commit": head, "last_sync_at": _now()}
    if agent.last_sync_commit is None or full:
        updates["last_bootstrap"] = updates["last_sync_at"]
    state = update_agent_fields(state, repo_name, **updates)
    return state, result


def watch_tick(
    provider: AgentProvider,
    config: AppConfig,
    state_path: Path,
    repo: str | None = None,
) -> list[str]:
    """Run one polling pass over the registered repos.

    State is reloaded from disk before each repo, and again before the synced
    agent record is written back, so changes other commands make to the state
    file meanwhile are kept. A repo whose sync fails is logged and skipped;
    the others still run.

    Args:
        provider: Remote memory provider
        config: Loaded configuration
        state_path: Path to the state file
        repo: Only watch this repo (default: every registered repo)

    Returns:
        One sync log line per repo that was synced
    """
    repo_names = [repo] if repo else sorted(load_state(state_path).agents)
    lines = []
    for name in repo_names:
        try:
            app_state = load_state(state_path)
            if name not in app_state.agents:
                logger.debug(f"[{name}] Not registered, skipping")
                continue
            previous = app_state.agents[name].last_sync_commit
            app_state, result = sync_one(provider, config, app_state, name)
            if result is None:
                continue
            latest = load_state(state_path)
            if name not in latest.agents:
                logger.warning(f"[{name}] Unregistered during sync, not saving")
                continue
            agents = dict(latest.agents)
            agents[name] = app_state.agents[name]
            save_state(state_path, latest.model_copy(update={"agents": agents}))
        except PassageSyncError as e:
            logger.warning(f"[{name}] Sync failed: {e}")
            continue
        lines.append(
            format_sync_log(
                name,
                previous,
                result.last_sync_commit,
                result.total_files,
                result.duration,
            )
        )
    return lines


@app.command
def register(
    repo: Annotated[str, cyclopts.Parameter(help="Repo name from config.yaml")],
    agent_id: Annotated[str, cyclopts.Parameter(help="Existing agent ID")],
    *,
    config: ConfigOption = DEFAULT_CONFIG_PATH,
    state: StateOption = DEFAULT_STATE_PATH,
    verbose: VerboseOption = False,
):
    """Link a configured repo to an existing agent.

    Example:
        passage-sync register my-app agent-1234
    """
    _configure_logging(verbose)
    console = _get_console()

    try:
        app_config = load_config(config)
        app_config.get_repo(repo)
        app_state = load_state(state)
        if repo in app_state.agents:
            _fail(
                console,
                f"{repo} is already registered to "
                f"{app_state.agents[repo].agent_id}",
            )
        save_state(state, add_agent_to_state(app_state, repo, agent_id, _now()))
    except PassageSyncError as e:
        _fail(console, str(e))

    console.print(f"[green]✓ Registered {repo} -> {agent_id}[/green]")
    console.print(f"[dim]Run 'passage-sync sync {repo}' to index it[/dim]")


@app.command
def unregister(
    repo: Annotated[str, cyclopts.Parameter(help="Repo name")],
    *,
    state: StateOption = DEFAULT_STATE_PATH,
    verbose: VerboseOption = False,
):
    """Forget the agent registered for a repo.

    Passages already stored on the server are left untouched.
    """
    _configure_logging(verbose)
    console = _get_console()

    try:
        app_state = load_state(state)
        _require_agent(app_state, repo)
        save_state(state, remove_agent_from_state(app_state, repo))
    except PassageSyncError as e:
        _fail(console, str(e))

    console.print(f"[yellow]Unregistered {repo}[/yellow]")


@app.command
def status(
    *,
    state: StateOption = DEFAULT_STATE_PATH,
    verbose: VerboseOption = False,
):
    """Show registered agents and their sync state."""
    _configure_logging(verbose)
    console = _get_console()

    try:
        app_state = load_state(state)
    except PassageSyncError as e:
        _fail(console, str(e))

    if not app_state.agents:
        console.print("[yellow]No agents registered[/yellow]")
        return

    table = Table(title="Passage Sync Status")
    table.add_column("Repo", style="cyan", no_wrap=True)
    table.add_column("Agent", style="white")
    table.add_column("Files", justify="right")
    table.add_column("Passages", justify="right")
    table.add_column("Last Commit", style="green")
    table.add_column("Last Sync", style="dim")

    for name in sorted(app_state.agents):
        agent = app_state.agents[name]
        table.add_row(
            name,
            agent.agent_id,
            str(len(agent.passages)),
            str(passage_count(agent.passages)),
            agent.last_sync_commit[:7] if agent.last_sync_commit else "Never",
            agent.last_sync_at or "-",
        )

    console.print(table)


@app.command
def sync(
    repo: Annotated[
        Optional[str], cyclopts.Parameter(help="Repo to sync (default: all)")
    ] = None,
    *,
    full: Annotated[
        bool, cyclopts.Parameter(help="Re-index every file, not just changes")
    ] = False,
    config: ConfigOption = DEFAULT_CONFIG_PATH,
    state: StateOption = DEFAULT_STATE_PATH,
    verbose: VerboseOption = False,
):
    """Sync changed files to each agent's archival memory.

    State is saved after each repo, so a failure leaves earlier repos synced.

    Example:
        passage-sync sync
        passage-sync sync my-app --full
    """
    _configure_logging(verbose)
    console = _get_console()

    try:
        app_config = load_config(config)
        app_state = load_state(state)
        repo_names = _select_repos(app_state, repo)
        if not repo_names:
            console.print("[yellow]No agents registered[/yellow]")
            return

        with _create_provider(app_config) as provider:
            for name in repo_names:
                previous = app_state.agents[name].last_sync_commit
                app_state, result = sync_one(
                    provider, app_config, app_state, name, full
                )
                if result is None:
                    console.print(f"{name}: up to date", style="dim", markup=False)
                    continue
                save_state(state, app_state)
                console.print(
                    format_sync_log(
                        name,
                        previous,
                        result.last_sync_commit,
                        result.total_files,
                        result.duration,
                    ),
                    markup=False,
                )
    except PassageSyncError as e:
        _fail(console, str(e))


@app.command
def watch(
    repo: Annotated[
        Optional[str], cyclopts.Parameter(help="Repo to watch (default: all)")
    ] = None,
    *,
    interval: Annotated[
        float, cyclopts.Parameter(help="Seconds between polls")
    ] = DEFAULT_WATCH_INTERVAL,
    config: ConfigOption = DEFAULT_CONFIG_PATH,
    state: StateOption = DEFAULT_STATE_PATH,
    verbose: VerboseOption = False,
):
    """Poll registered repos and sync whenever HEAD moves.

    Runs until interrupted with Ctrl-C. A sync interrupted midway is not
    saved; the next run picks it up again from the last saved commit.

    Example:
        passage-sync watch --interval 60
    """
    _configure_logging(verbose)
    console = _get_console()

    if interval <= 0:
        _fail(console, "--interval must be positive")
    try:
        app_config = load_config(config)
    except PassageSyncError as e:
        _fail(console, str(e))

    console.print(f"[cyan]Watching every {interval:g}s, press Ctrl-C to stop[/cyan]")
    try:
        with _create_provider(app_config) as provider:
            while True:
                try:
                    lines = watch_tick(provider, app_config, state, repo)
                except PassageSyncError as e:
                    console.print(f"[red]Error: {escape(str(e))}[/red]")
                    lines = []
                for line in lines:
                    console.print(line, markup=False)
                time.sleep(interval)
    except KeyboardInterrupt:
        console.print("[yellow]Stopped watching[/yellow]")


@app.command
def reconcile(
    repo: Annotated[
        Optional[str], cyclopts.Parameter(help="Repo to check (default: all)")
    ] = None,
    *,
    fix: Annotated[
        bool, cyclopts.Parameter(help="Delete orphans and drop missing IDs")
    ] = False,
    config: ConfigOption = DEFAULT_CONFIG_PATH,
    state: StateOption = DEFAULT_STATE_PATH,
    verbose: VerboseOption = False,
):
    """Compare the local passage map with the server.

    Example:
        passage-sync reconcile
        passage-sync reconcile my-app --fix
    """
    _configure_logging(verbose)
    console = _get_console()

    try:
        app_config = load_config(config)
        app_state = load_state(state)
        repo_names = _select_repos(app_state, repo)

        table = Table(title="Reconcile")
        table.add_column("Repo", style="cyan", no_wrap=True)
        table.add_column("Local", justify="right")
        table.add_column("Server", justify="right")
        table.add_column("Orphaned", justify="right")
        table.add_column("Missing", justify="right")
        table.add_column("Status")

        drifted = 0

        with _create_provider(app_config) as provider:
            for name in repo_names:
                agent = app_state.agents[name]
                result = reconcile_agent(provider, agent)
                status_text = "[green]✓ In sync[/green]"
                if not result.in_sync:
                    status_text = "[yellow]Drift[/yellow]"
                    drifted += 1
                    if fix:
                        passages = fix_reconcile_drift(provider, agent, result)
                        app_state = update_passage_map(app_state, name, passages)
                        save_state(state, app_state)
                        status_text = "[green]Fixed[/green]"
                table.add_row(
                    name,
                    str(result.local_passage_count),
                    str(result.server_passage_count),
                    str(len(result.orphan_passage_ids)),
                    str(len(result.missing_passage_ids)),
                    status_text,
                )
    except PassageSyncError as e:
        _fail(console, str(e))

    console.print(table)
    if drifted and not fix:
        console.print("[dim]Run with --fix to repair drift[/dim]")


@app.command
def ask(
    repo: Annotated[str, cyclopts.Parameter(help="Repo whose agent to ask")],
    question: Annotated[str, cyclopts.Parameter(help="Question text")],
    *,
    routing: Annotated[
        str, cyclopts.Parameter(help="Model routing: auto, quality or speed")
    ] = "auto",
    config: ConfigOption = DEFAULT_CONFIG_PATH,
    state: StateOption = DEFAULT_STATE_PATH,
    verbose: VerboseOption = False,
):
    """Ask a repo's agent a question.

    Each invocation starts with an empty answer cache. Long-running callers
    that share one InMemoryAnswerCache across questions get cached answers.

    Example:
        passage-sync ask my-app "Where are HTTP routes registered?"
    """
    _configure_logging(verbose)
    console = _get_console()

    try:
        mode = parse_ask_routing_mode(routing)
    except ValueError as e:
        _fail(console, str(e))

    try:
        app_config = load_config(config)
        agent = _require_agent(load_state(state), repo)
        cache = InMemoryAnswerCache(default_ttl=app_config.defaults.cache_ttl_seconds)
        with _create_provider(app_config) as provider:
            result = ask_agent(
                provider,
                cache,
                agent,
                question,
                routing=mode,
                fast_model=app_config.letta.fast_model,
                ttl=app_config.defaults.cache_ttl_seconds,
            )
    except PassageSyncError as e:
        _fail(console, str(e))

    if not result.answer:
        console.print("[yellow]The agent returned no answer[/yellow]")
        return
    console.print(
        Panel(
            Text(result.answer),
            title=f"{repo} ({result.model_key})",
            border_style="cyan",
        )
    )


@app.command
def memory(
    repo: Annotated[str, cyclopts.Parameter(help="Repo whose agent to inspect")],
    *,
    label: Annotated[
        Optional[str], cyclopts.Parameter(help="Only this block label")
    ] = None,
    set_value: Annotated[
        Optional[str], cyclopts.Parameter(name="--set", help="New value for --label")
    ] = None,
    config: ConfigOption = DEFAULT_CONFIG_PATH,
    state: StateOption = DEFAULT_STATE_PATH,
    verbose: VerboseOption = False,
):
    """Show the core memory blocks of a repo's agent, or update one.

    Example:
        passage-sync memory my-app
        passage-sync memory my-app --label conventions --set "Use snake_case"
    """
    _configure_logging(verbose)
    console = _get_console()

    if set_value is not None and not label:
        _fail(console, "--set requires --label")

    try:
        app_config = load_config(config)
        agent = _require_agent(load_state(state), repo)
        with _create_provider(app_config) as provider:
            if set_value is not None:
                updated = provider.update_block(agent.agent_id, label, set_value)
                blocks = [
                    CoreMemoryBlock(
                        label=label, value=updated.value, limit=updated.limit
                    )
                ]
                console.print(f"[green]✓ Updated {escape(label)} block[/green]")
            else:
                labels = [label] if label else BLOCK_LABELS
                blocks = get_core_memory(provider, agent.agent_id, labels)
    except PassageSyncError as e:
        _fail(console, str(e))

    if not blocks:
        console.print("[yellow]No core memory blocks found[/yellow]")
        return
    for block in blocks:
        limit = f" ({len(block.value)}/{block.limit} chars)" if block.limit else ""
        console.print(
            Panel(
                Text(block.value), title=f"{block.label}{limit}", border_style="blue"
            )
        )


def main():
    app()


if __name__ == "__main__":
    main()
