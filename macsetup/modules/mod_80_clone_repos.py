from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Set

from ..context import ModuleCtx
from ..errors import ModuleError
from ..lib.selector import LabeledItem
from ..repos.destinations import DestinationResolver, DestinationRules
from ..repos.hosts import PROVIDERS, Provider, RemoteRepo
from ..repos.scheduler import CloneBatchResult, CloneFn, CloneScheduler, CloneStatus, CloneTask

logger = logging.getLogger(__name__)

NO_MAPPING = "[NO MAPPING]"


class CloneReposModule:
    """Clone selected GitHub/GitLab repositories into mapped destinations.

    Phase 1 (sequential, may prompt): choose repositories and resolve each
    destination. Phase 2 (parallel, never prompts): clone the resolved list.
    """

    name = "clone-repos"
    display_name = "Clone Repositories"

    def __init__(self, *, clone_fn: Optional[CloneFn] = None) -> None:
        self.clone_fn = clone_fn

    def _provider_ready(self, ctx: ModuleCtx, provider: Provider) -> bool:
        if not provider.available(ctx.runner):
            msg = f"{provider.label} CLI ({provider.cli}) not installed - skipping {provider.label} repos"
            if ctx.dry_run:
                logger.warning(msg)
            else:
                logger.error(msg)
            logger.info("Install with: brew install %s", provider.cli)
            return False

        if not provider.authenticated(ctx.runner):
            msg = f"{provider.label} CLI not authenticated - skipping {provider.label} repos"
            if ctx.dry_run:
                logger.warning(msg)
            else:
                logger.error(msg)
            logger.info("Authenticate with: %s", provider.login_hint)
            return False

        provider.prefer_https(ctx.runner)
        return True

    def _select(
        self,
        ctx: ModuleCtx,
        resolver: DestinationResolver,
        owner: str,
        repos: Sequence[RemoteRepo],
    ) -> List[RemoteRepo]:
        items = []
        for repo in repos:
            found = resolver.lookup(repo.name, owner)
            dest = found.relative_path if found.resolved else NO_MAPPING
            items.append(LabeledItem(value=repo.name, label=f"{repo.name}  ->  {dest}", description=repo.description))

        chosen = set(
            ctx.selector.choose(items, f"Select repos to clone from {owner} (Tab=multi-select, Enter=confirm)", multi=True)
        )
        return [r for r in repos if r.name in chosen]

    def plan(self, ctx: ModuleCtx, resolver: DestinationResolver) -> tuple[List[CloneTask], List[str]]:
        """Phase 1: selection and destination resolution for every provider."""

        tasks: List[CloneTask] = []
        problems: List[str] = []
        seen: Set[str] = set()

        for provider in PROVIDERS:
            owners, _ = ctx.store.get_array(provider.config_path)
            if not owners:
                continue
            logger.info("%s: %s", provider.label, ", ".join(owners))
            if not self._provider_ready(ctx, provider):
                if not ctx.dry_run:
                    problems.append(provider.label)
                continue

            for owner in owners:
                logger.info("Fetching repositories from %s...", owner)
                try:
                    repos = provider.list_repos(ctx.runner, owner)
                except ModuleError as e:
                    logger.error("%s", e)
                    problems.append(owner)
                    continue
                if not repos:
                    logger.warning("No repositories found for %s", owner)
                    continue

                selected = self._select(ctx, resolver, owner, repos)
                if not selected:
                    logger.info("No repositories selected for %s", owner)
                    continue

                for repo in selected:
                    res = resolver.resolve(repo.name, owner)
                    if not res.resolved or res.path is None:
                        logger.warning("Skipped: %s (no destination selected)", repo.name)
                        continue
                    task = CloneTask(repo_name=repo.name, clone_url=repo.clone_url, destination=res.path)
                    key = str(task.repo_path)
                    if key in seen:
                        logger.warning("Skipped: %s (already planned for %s)", repo.name, key)
                        continue
                    seen.add(key)
                    tasks.append(task)

        return tasks, problems

    def _report(self, result: CloneBatchResult) -> None:
        logger.info("")
        logger.info("Clone results")
        for t in result.tasks:
            if t.status is CloneStatus.SUCCEEDED:
                logger.info("  ✓ %-30s %s", t.repo_name, t.action)
            else:
                logger.info("  ✗ %-30s %s", t.repo_name, t.reason or t.action)
                if t.diagnostic is not None and t.diagnostic.remediation:
                    logger.info("      -> %s", t.diagnostic.remediation)
        logger.info(
            "Cloned: %d, already present: %d, would clone: %d, failed: %d",
            len(result.with_action("cloned")),
            len(result.with_action("present")),
            len(result.with_action("would-clone")),
            result.failed,
        )

    def run(self, ctx: ModuleCtx) -> None:
        s = ctx.settings
        rules = DestinationRules.from_config(ctx.store)
        resolver = DestinationResolver(rules, s.dev_root, ctx.selector, ctx.ask_text)

        tasks, problems = self.plan(ctx, resolver)

        if tasks:
            scheduler = CloneScheduler(
                ctx.runner,
                max_parallel=s.clone_parallel_jobs,
                timeout_s=s.git_clone_timeout,
                dry_run=ctx.dry_run,
                clone_fn=self.clone_fn,
            )
            result = scheduler.run(tasks)
            self._report(result)
            if result.failed:
                problems.append(f"{result.failed} repositories failed to clone")
        else:
            logger.info("No repositories were cloned")

        if problems:
            raise ModuleError("; ".join(problems))
