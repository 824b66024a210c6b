"""Workspace: the actions a user takes on sessions, wired to store, generator and mutator."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Sequence

from qastudio.ai.client import AIClient, set_debug_dir
from qastudio.artifacts import mutator
from qastudio.artifacts.coordinator import GenerationCoordinator
from qastudio.errors import (
    AnalysisFailure,
    GenerationParseError,
    IndexOutOfRange,
    NoPlanError,
    SessionNotFound,
)
from qastudio.models.config import StudioConfig
from qastudio.models.session import (
    ArtifactScope,
    GeneratedScript,
    RequirementsAnalysis,
    ScriptFramework,
    Session,
    TestDataItem,
    TestPlan,
    TestSuite,
)
from qastudio.planner.generator import Generator
from qastudio.storage.ids import issue_id, now_ms
from qastudio.storage.persistence import JsonFileRepository, RecentUrls
from qastudio.store.session_store import SessionStore
from qastudio.url_utils import hostname_for

logger = logging.getLogger(__name__)


def merge_suggestions(
    items: Sequence[TestDataItem], analysis: RequirementsAnalysis,
) -> list[TestDataItem]:
    """Existing items plus one item per required key not yet present, prefilled with the suggestion."""
    merged = list(items)
    known = {i.key for i in items}
    for req in analysis.requirements:
        if req.key in known:
            continue
        known.add(req.key)
        merged.append(TestDataItem(
            key=req.key,
            value=req.suggested_value or "",
            is_sensitive=req.is_sensitive,
            type="secret" if req.is_sensitive else (
                "boolean" if req.input_type == "boolean" else "text"
            ),
        ))
    return merged


class Workspace:
    """Entry point for every session action.

    Backend calls run in worker threads so several "more cases" requests for
    different suites can be awaited together. Results always land in the
    session as stored when the call finishes, never in a copy taken before.
    """

    def __init__(
        self,
        config: StudioConfig,
        store: SessionStore,
        generator: Generator | None = None,
        user_id: str | None = None,
        history: RecentUrls | None = None,
    ):
        self.config = config
        self.store = store
        self._generator = generator
        self.user_id = user_id or config.resolved_user_id()
        self.history = history or RecentUrls(config.history_path, config.recent_url_limit)
        self._coordinators: dict[str, GenerationCoordinator] = {}

    @classmethod
    def open(cls, config: StudioConfig) -> "Workspace":
        """Workspace backed by the JSON session file under config.data_dir."""
        set_debug_dir(config.debug_dir)
        store = SessionStore(JsonFileRepository(config.sessions_path))
        logger.debug("Opened workspace at %s for user %s",
                     config.data_dir, config.resolved_user_id())
        return cls(config, store)

    @property
    def generator(self) -> Generator:
        # Created on first use so read-only commands work without an API key
        if self._generator is None:
            ai_client = AIClient(
                model=self.config.ai_model,
                max_tokens=self.config.ai_max_tokens,
                api_key=self.config.ai_api_key,
            )
            self._generator = Generator(self.config, ai_client)
        return self._generator

    # --- Lookup ---

    def get(self, session_id: str) -> Session:
        """Session as currently stored, including writes from other processes."""
        self.store.refresh()
        session = self.store.get(session_id)
        if session is None or not session.is_visible_to(self.user_id):
            raise SessionNotFound(session_id)
        return session

    def sessions(self) -> list[Session]:
        """Visible sessions, most recently changed first."""
        self.store.refresh()
        return sorted(self.store.list_for(self.user_id), key=lambda s: s.timestamp, reverse=True)

    def recent_urls(self) -> list[str]:
        return self.history.load()

    def coordinator(self, session_id: str) -> GenerationCoordinator:
        return self._coordinators.setdefault(session_id, GenerationCoordinator())

    def _require_plan(self, session_id: str) -> TestPlan:
        session = self.get(session_id)
        if session.plan is None:
            raise NoPlanError(f"Session {session_id} has no test plan yet")
        return session.plan

    def _commit(self, session_id: str, touch: bool = True, **updates: Any) -> Session:
        """Apply updates to the stored session and persist. Content changes bump the timestamp."""
        session = self.get(session_id)
        if touch:
            updates["timestamp"] = now_ms()
        updated = session.model_copy(update=updates)
        self.store.upsert(updated)
        return updated

    # --- Session lifecycle ---

    def create_session(self, url: str, test_data: Sequence[TestDataItem] | None = None) -> Session:
        url = url.strip()
        session = Session(
            id=issue_id(),
            owner_id=self.user_id,
            name=hostname_for(url),
            timestamp=now_ms(),
            url=url,
            test_data=list(test_data or []),
        )
        self.store.refresh()
        self.store.upsert(session)
        self.history.record(url)
        logger.info("Created session %s for %s", session.id, url)
        return session

    def rename_session(self, session_id: str, new_name: str) -> Session:
        self.get(session_id)
        self.store.rename(session_id, new_name)
        return self.get(session_id)

    def delete_session(self, session_id: str) -> None:
        self.get(session_id)
        self.store.delete(session_id)
        self._coordinators.pop(session_id, None)

    # --- Test data ---

    def update_test_data(self, session_id: str, items: Sequence[TestDataItem]) -> Session:
        return self._commit(session_id, test_data=list(items))

    def set_test_value(
        self, session_id: str, key: str, value: str, is_sensitive: Optional[bool] = None,
    ) -> Session:
        """Set one test data value, adding the key when it is new."""
        items = list(self.get(session_id).test_data)
        for i, item in enumerate(items):
            if item.key == key:
                update: dict[str, Any] = {"value": value}
                if is_sensitive is not None:
                    update["is_sensitive"] = is_sensitive
                items[i] = item.model_copy(update=update)
                break
        else:
            items.append(TestDataItem(key=key, value=value, is_sensitive=bool(is_sensitive)))
        return self.update_test_data(session_id, items)

    # --- Backend-driven generation ---

    async def analyze(self, session_id: str) -> Session:
        """Run requirements analysis and prefill test data with its suggestions."""
        session = self.get(session_id)
        known_keys = [i.key for i in session.test_data]
        try:
            analysis = await asyncio.to_thread(
                self.generator.analyze_requirements, session.url, known_keys,
            )
        except AnalysisFailure as e:
            # Session stays as it was, usable for manual data entry
            logger.error("Analysis for session %s failed: %s", session_id, e)
            raise

        current = self.get(session_id)
        self.history.record(current.url)
        return self._commit(
            session_id,
            requirements=analysis,
            test_data=merge_suggestions(current.test_data, analysis),
        )

    async def generate(
        self,
        session_id: str,
        test_data: Sequence[TestDataItem] | None = None,
        scope: ArtifactScope | None = None,
    ) -> Session:
        """Generate a new plan, replacing any existing one.

        On GenerationParseError the stored plan is left as it was.
        """
        session = self.get(session_id)
        data = list(test_data) if test_data is not None else list(session.test_data)
        scope = scope or self.config.default_scope
        try:
            plan = await asyncio.to_thread(self.generator.generate_plan, session.url, data, scope)
        except GenerationParseError as e:
            logger.error("Plan generation for session %s failed: %s", session_id, e)
            raise
        return self._commit(session_id, plan=plan, test_data=data, artifact_scope=scope)

    async def request_more_cases(
        self,
        session_id: str,
        suite_index: int,
        focus_type: Optional[str] = None,
        count: Optional[int] = None,
    ) -> Session:
        """Generate more cases for one suite and append them to the plan as stored at completion.

        Raises AlreadyInFlight when the same suite of this session is already generating.
        """
        session = self.get(session_id)
        plan = self._require_plan(session_id)
        if not 0 <= suite_index < len(plan.suites):
            raise IndexOutOfRange("suite", suite_index, len(plan.suites))
        suite: TestSuite = plan.suites[suite_index]

        def produce():
            return asyncio.to_thread(
                self.generator.generate_more_cases,
                session.url, suite, session.test_data, focus_type, count,
            )

        def commit(merged: TestPlan) -> None:
            self._commit(session_id, plan=merged)

        await self.coordinator(session_id).run(
            suite_index,
            produce,
            read_plan=lambda: self._require_plan(session_id),
            commit=commit,
        )
        return self.get(session_id)

    async def regenerate_case(
        self,
        session_id: str,
        suite_index: int,
        case_index: int,
        new_test_data: Sequence[TestDataItem] | None = None,
    ) -> Session:
        """Rewrite one case around new test data, in place."""
        session = self.get(session_id)
        plan = self._require_plan(session_id)
        # Validates both indices before spending a backend call
        original = mutator.get_case(plan, suite_index, case_index)
        data = list(new_test_data) if new_test_data is not None else list(session.test_data)

        case = await asyncio.to_thread(
            self.generator.regenerate_case, session.url, original, data,
        )
        merged = mutator.replace_case(self._require_plan(session_id), suite_index, case_index, case)
        return self._commit(session_id, plan=merged)

    async def add_script(
        self,
        session_id: str,
        framework: ScriptFramework,
        suite_names: Sequence[str] | None = None,
    ) -> GeneratedScript:
        """Generate an automation script and append it to the session's scripts."""
        session = self.get(session_id)
        plan = self._require_plan(session_id)
        code = await asyncio.to_thread(
            self.generator.generate_script, framework, plan, suite_names,
        )
        target = ", ".join(suite_names) if suite_names else "Full plan"
        script = GeneratedScript(
            id=issue_id(),
            name=f"{framework.value} - {target}",
            framework=framework,
            code=code,
            created_at=now_ms(),
            target_suite_names=list(suite_names) if suite_names else None,
        )
        current = self.get(session.id)
        self._commit(session_id, generated_scripts=current.generated_scripts + [script])
        logger.info("Added %s script %s to session %s", framework.value, script.id, session_id)
        return script

    # --- Manual edits ---

    def edit_case(
        self, session_id: str, suite_index: int, case_index: int, key: str, value: Any,
    ) -> Session:
        plan = mutator.update_case_field(
            self._require_plan(session_id), suite_index, case_index, key, value,
        )
        return self._commit(session_id, plan=plan)

    def edit_field(self, session_id: str, path: mutator.FieldPath, value: Any) -> Session:
        plan = mutator.update_field(self._require_plan(session_id), path, value)
        return self._commit(session_id, plan=plan)

    def remove_case(self, session_id: str, suite_index: int, case_index: int) -> Session:
        plan = mutator.remove_case(self._require_plan(session_id), suite_index, case_index)
        return self._commit(session_id, plan=plan)
