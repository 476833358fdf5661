"""
Application Controller for Tarushiru

This module ties together the document store, storage, AI agent and
audit logger, and defines every user-facing flow:
1. Soft authentication and screen switching
2. Journal (write, edit, analyze, trend report)
3. Money (monthly asset balances, categories, budget, report)
4. Goals (add, toggle, rename, delete, coaching)
5. Profile (fields, strengths, AI generated text)
6. Data management (backup export/import, full reset)

DESIGN DECISION: The controller enforces the boundaries:
- User input is parsed before any mutation runs
- Destructive actions need an explicit confirmation
- An AI result is attached only if its request is still the latest one
  for that entity; older results are discarded and audited
- Every change goes through the DocumentStore, which writes it through

The UI never mutates the document itself.
"""

from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, TypeVar, Union

import structlog
from pydantic import ValidationError

from src.agents import (
    AIGatewayError,
    AIRequest,
    AITask,
    AnnotationAgentInterface,
    GeminiAnnotationAgent,
    RequestTokenRegistry,
    asset_trends_request,
    career_summary_request,
    goal_coaching_request,
    journal_trends_request,
    personality_request,
    resume_request,
)
from src.aggregates import (
    BudgetSummary,
    EmotionPoint,
    MonthlyAssetSummary,
    emotion_trend,
    summarize_budget,
    summarize_month,
)
from src.audit import AuditLogger
from src.config import AppSettings, get_settings
from src.migration import LoadResult, LoadSource, load_document
from src.models.app_data import (
    AppData,
    GoalCategory,
    JournalEntry,
    UserProfile,
    ViewState,
)
from src.models.audit import AuditEvent
from src.services.storage import (
    DocumentStorageInterface,
    InMemoryAuditStorage,
    InMemoryDocumentStorage,
    JsonLinesAuditStorage,
    LocalFileDocumentStorage,
    StorageError,
)
from src.store import DocumentStore
from src.store import mutations
from src.store.mutations import EntityNotFoundError
from src.validation import (
    MAX_STRENGTHS,
    BackupFormatError,
    InputValidationError,
    parse_amount,
    parse_entry_date,
    parse_month,
    parse_skills,
    require_text,
    validate_backup_document,
    validate_strength_index,
)


logger = structlog.get_logger("tarushiru.controller")

T = TypeVar("T")

GOAL_COACHING_FALLBACK = "Keep going! Every small step counts."

EDITABLE_PROFILE_FIELDS = frozenset({
    "name",
    "email",
    "password",
    "mbti",
    "history",
    "career_strengths",
    "interests",
    "values",
    "environment",
})


class AuthenticationError(Exception):
    """Soft login failed, or a screen was requested while logged out."""
    pass


class ConfirmationRequiredError(Exception):
    """A destructive action was requested without confirmation."""

    def __init__(self, action: str):
        super().__init__(f"'{action}' needs confirmation")
        self.action = action


class NoDataToExportError(LookupError):
    """Nothing has been stored yet, so there is nothing to back up."""
    pass


def current_month() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m")


def utc_now_iso() -> str:
    return parse_entry_date(datetime.now(timezone.utc))


def backup_filename(today: Optional[datetime] = None) -> str:
    today = today or datetime.now(timezone.utc)
    return f"tarushiru_backup_{today.strftime('%Y-%m-%d')}.json"


class AppController:
    """
    Owns the current screen and every operation on the document.

    Create it with AppController.from_storage(...) so the stored
    document is loaded and normalized first.
    """

    def __init__(
        self,
        storage: DocumentStorageInterface,
        initial: Optional[AppData] = None,
        agent: Optional[AnnotationAgentInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        app_settings: Optional[AppSettings] = None,
        token_registry: Optional[RequestTokenRegistry] = None,
        load_result: Optional[LoadResult] = None,
    ):
        self._storage = storage
        self._agent = agent
        self._audit_logger = audit_logger or AuditLogger()
        self._app_settings = app_settings or AppSettings()
        self._tokens = token_registry or RequestTokenRegistry()
        self._store = DocumentStore(initial, persist=self._persist)
        self._view = ViewState.AUTH
        self._authenticated = False
        self.load_result = load_result

    @classmethod
    def from_storage(
        cls,
        storage: DocumentStorageInterface,
        agent: Optional[AnnotationAgentInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        app_settings: Optional[AppSettings] = None,
    ) -> "AppController":
        """
        Load and normalize the stored document.

        Nothing is written back here. A corrupt document stays in storage
        until the first mutation replaces it.
        """
        audit_logger = audit_logger or AuditLogger()
        result = _read_and_load(storage, audit_logger)
        audit_logger.log_document_loaded(
            source=result.source.value,
            journal_count=len(result.data.journal),
            goal_count=len(result.data.goals),
        )
        return cls(
            storage=storage,
            initial=result.data,
            agent=agent,
            audit_logger=audit_logger,
            app_settings=app_settings,
            load_result=result,
        )

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def data(self) -> AppData:
        return self._store.get()

    @property
    def view(self) -> ViewState:
        return self._view

    @property
    def is_authenticated(self) -> bool:
        return self._authenticated

    @property
    def has_account(self) -> bool:
        return self.data.user is not None

    @property
    def ai_available(self) -> bool:
        return self._agent is not None

    def recent_activity(self, limit: int = 20) -> list[AuditEvent]:
        return self._audit_logger.recent_events(limit)

    def _persist(self, data: AppData) -> None:
        text = data.to_json()
        self._storage.write_document(text)
        self._audit_logger.log_document_saved(len(text.encode("utf-8")))

    def _reject(self, error: InputValidationError) -> InputValidationError:
        self._audit_logger.log_input_rejected(error.field, error.message)
        return error

    # =========================================================================
    # AUTH AND NAVIGATION
    # =========================================================================

    def login(self, email: str, password: str) -> UserProfile:
        """
        Soft login.

        The first login creates the profile (named after the local part of
        the email). Later logins must match the stored password if one is
        set. This is a convenience gate, not a security boundary.

        Raises:
            InputValidationError: If email or password is blank
            AuthenticationError: If the password does not match
        """
        try:
            email = require_text(email, "email")
            password = require_text(password, "password")
        except InputValidationError as e:
            raise self._reject(e)

        user = self.data.user
        if user is None:
            user = UserProfile(
                name=email.split("@")[0],
                email=email,
                password=password,
            )
            self._store.apply(lambda d: mutations.set_user_profile(d, user))
            self._audit_logger.log_user_registered(user.name)
        elif user.password and user.password != password:
            self._audit_logger.log_login(succeeded=False)
            raise AuthenticationError("Incorrect password.")
        else:
            self._audit_logger.log_login(succeeded=True)

        self._authenticated = True
        self._view = ViewState.JOURNAL
        return user

    def logout(self) -> None:
        self._authenticated = False
        self._view = ViewState.AUTH

    def set_view(self, view: Union[ViewState, str]) -> ViewState:
        view = ViewState(view)
        if view != ViewState.AUTH and not self._authenticated:
            raise AuthenticationError("Log in first.")
        self._view = view
        return view

    # =========================================================================
    # AI PLUMBING
    # =========================================================================

    async def _call_agent(
        self,
        task: AITask,
        payload_chars: int,
        call: Callable[[AnnotationAgentInterface], Awaitable[T]],
    ) -> T:
        if self._agent is None:
            raise AIGatewayError(task, "AI service is not configured")
        try:
            result = await call(self._agent)
        except AIGatewayError as e:
            self._audit_logger.log_external_service_error(
                service="gemini",
                task=task.value,
                error_message=e.message,
            )
            raise
        self._audit_logger.log_ai_request_completed(task.value, payload_chars)
        return result

    async def _complete(self, request: AIRequest) -> str:
        return await self._call_agent(
            request.task,
            len(request.payload),
            lambda agent: agent.complete(request),
        )

    async def _guarded_profile_text(self, field: str, request: AIRequest) -> Optional[str]:
        """
        Generate text for one profile field and store it there.

        Returns None (and stores nothing) if a newer request for the same
        field was issued while this one was in flight.
        """
        key = f"profile:{field}"
        token = self._tokens.issue(key)
        try:
            text = await self._complete(request)
            if not self._tokens.is_latest(key, token):
                self._audit_logger.log_stale_result_discarded(key, request.task.value)
                return None
            self._store.apply(lambda d: mutations.update_user_profile(d, **{field: text}))
            self._audit_logger.log_analysis_attached("profile", field, request.task.value)
            return text
        finally:
            self._tokens.release(key, token)

    # =========================================================================
    # JOURNAL
    # =========================================================================

    async def submit_journal_entry(self, content: str, analyze: bool = True) -> JournalEntry:
        """
        Write a new entry.

        The entry is analyzed first and appended together with its
        analysis in one mutation. If analysis fails nothing is saved.
        """
        try:
            content = require_text(content, "content")
        except InputValidationError as e:
            raise self._reject(e)

        analysis = None
        ai_comment = None
        if analyze:
            response = await self._call_agent(
                AITask.ANALYZE_ENTRY,
                len(content),
                lambda agent: agent.analyze_journal_entry(content),
            )
            analysis = response.to_analysis()
            ai_comment = response.ai_comment

        entry = JournalEntry(
            id=mutations.new_id(),
            date=utc_now_iso(),
            content=content,
            analysis=analysis,
            ai_comment=ai_comment,
        )
        return self.save_journal_entry(entry)

    def save_journal_entry(self, entry: JournalEntry) -> JournalEntry:
        """Replace the entry with the same id, or append it if there is none."""
        created = not mutations.has_journal_entry(self.data, entry.id)
        if created:
            self._store.apply(lambda d: mutations.append_journal_entry(d, entry))
        else:
            self._store.apply(lambda d: mutations.replace_journal_entry_by_id(d, entry))
        self._audit_logger.log_journal_entry_saved(entry.id, created=created)
        return entry

    def edit_journal_entry(self, entry_id: str, content: str, date: Union[str, datetime]) -> JournalEntry:
        """
        Change the text and timestamp of an entry in place.

        A date without a zone is local time. The existing analysis is kept
        as is.
        """
        try:
            content = require_text(content, "content")
            date = parse_entry_date(date)
        except InputValidationError as e:
            raise self._reject(e)

        entry = mutations.get_journal_entry(self.data, entry_id)
        updated = entry.model_copy(update={"content": content, "date": date})
        self._store.apply(lambda d: mutations.replace_journal_entry_by_id(d, updated))
        self._audit_logger.log_journal_entry_saved(entry_id, created=False)
        return updated

    async def reanalyze_journal_entry(self, entry_id: str) -> Optional[JournalEntry]:
        """
        Analyze an existing entry again and attach the result.

        Returns None if a newer analysis of the same entry was started in
        the meantime; that newer one wins.
        """
        entry = mutations.get_journal_entry(self.data, entry_id)
        key = f"journal:{entry_id}"
        token = self._tokens.issue(key)
        try:
            response = await self._call_agent(
                AITask.ANALYZE_ENTRY,
                len(entry.content),
                lambda agent: agent.analyze_journal_entry(entry.content),
            )
            if not self._tokens.is_latest(key, token):
                self._audit_logger.log_stale_result_discarded(key, AITask.ANALYZE_ENTRY.value)
                return None
            self._store.apply(lambda d: mutations.attach_journal_analysis(
                d, entry_id, response.to_analysis(), response.ai_comment,
            ))
            self._audit_logger.log_analysis_attached(
                "journal_entry", entry_id, AITask.ANALYZE_ENTRY.value
            )
            return mutations.get_journal_entry(self.data, entry_id)
        finally:
            self._tokens.release(key, token)

    def emotion_points(self) -> list[EmotionPoint]:
        return emotion_trend(self.data.journal, window=self._app_settings.emotion_chart_window)

    async def journal_trend_report(self) -> str:
        """Markdown report over recent entries. Not stored."""
        request = journal_trends_request(
            self.data.journal,
            window=self._app_settings.journal_trend_window,
        )
        return await self._complete(request)

    # =========================================================================
    # MONEY
    # =========================================================================

    def set_asset_value(self, month: str, category: str, raw_amount) -> AppData:
        """Set one category balance for one month. Blank input means 0."""
        try:
            month = parse_month(month)
            category = require_text(category, "category")
            amount = parse_amount(raw_amount, category, blank_as_zero=True)
        except InputValidationError as e:
            raise self._reject(e)
        return self._store.apply(lambda d: mutations.set_asset_value(d, month, category, amount))

    def add_asset_category(self, name: str) -> AppData:
        name = (name or "").strip()
        config = mutations.add_asset_category(self.data.money_config, name)
        if config is self.data.money_config:
            return self.data
        return self._store.apply(lambda d: mutations.set_money_config(d, config))

    def remove_asset_category(self, name: str, confirmed: bool = False) -> AppData:
        """Remove a category from the list. Its recorded balances are kept."""
        if not confirmed:
            raise ConfirmationRequiredError("remove_asset_category")
        config = mutations.remove_asset_category(self.data.money_config, name)
        return self._store.apply(lambda d: mutations.set_money_config(d, config))

    def set_monthly_income(self, raw_amount) -> AppData:
        try:
            amount = parse_amount(raw_amount, "monthly income", blank_as_zero=True)
        except InputValidationError as e:
            raise self._reject(e)
        budget = mutations.set_monthly_income(self.data.budget_profile, amount)
        return self._store.apply(lambda d: mutations.set_budget_profile(d, budget))

    def set_variable_budget(self, raw_amount) -> AppData:
        try:
            amount = parse_amount(raw_amount, "variable budget", blank_as_zero=True)
        except InputValidationError as e:
            raise self._reject(e)
        budget = mutations.set_variable_budget(self.data.budget_profile, amount)
        return self._store.apply(lambda d: mutations.set_budget_profile(d, budget))

    def add_fixed_cost(self, name: str, raw_amount) -> AppData:
        """Both a name and an amount are required."""
        try:
            name = require_text(name, "name")
            amount = parse_amount(raw_amount, "amount")
        except InputValidationError as e:
            raise self._reject(e)
        budget = mutations.add_fixed_cost(self.data.budget_profile, name, amount)
        return self._store.apply(lambda d: mutations.set_budget_profile(d, budget))

    def remove_fixed_cost(self, item_id: str) -> AppData:
        budget = mutations.remove_fixed_cost(self.data.budget_profile, item_id)
        return self._store.apply(lambda d: mutations.set_budget_profile(d, budget))

    def asset_summary(self, month: Optional[str] = None) -> MonthlyAssetSummary:
        month = parse_month(month) if month else current_month()
        return summarize_month(self.data.assets, month, self.data.money_config.asset_categories)

    def budget_summary(self) -> BudgetSummary:
        return summarize_budget(self.data.budget_profile)

    async def money_report(self) -> str:
        """Markdown report over asset history and budget. Not stored."""
        request = asset_trends_request(
            self.data.assets,
            self.data.budget_profile,
            window=self._app_settings.asset_analysis_window,
        )
        return await self._complete(request)

    # =========================================================================
    # GOALS
    # =========================================================================

    def add_goal(self, title: str, category: Union[GoalCategory, str]) -> AppData:
        try:
            title = require_text(title, "title")
        except InputValidationError as e:
            raise self._reject(e)
        try:
            category = GoalCategory(category)
        except ValueError:
            raise self._reject(InputValidationError("category", f"Unknown goal category: {category}"))
        goals = mutations.add_goal(self.data.goals, title, category)
        return self._store.apply(lambda d: mutations.set_goals(d, goals))

    def toggle_goal(self, goal_id: str) -> AppData:
        goals = mutations.toggle_goal_progress(self.data.goals, goal_id)
        return self._store.apply(lambda d: mutations.set_goals(d, goals))

    def rename_goal(self, goal_id: str, title: str) -> AppData:
        try:
            title = require_text(title, "title")
        except InputValidationError as e:
            raise self._reject(e)
        goals = mutations.rename_goal(self.data.goals, goal_id, title)
        return self._store.apply(lambda d: mutations.set_goals(d, goals))

    def delete_goal(self, goal_id: str, confirmed: bool = False) -> AppData:
        if not confirmed:
            raise ConfirmationRequiredError("delete_goal")
        goals = mutations.remove_goal(self.data.goals, goal_id)
        return self._store.apply(lambda d: mutations.set_goals(d, goals))

    async def goal_coaching(self) -> str:
        """Short coaching message. Not stored."""
        text = await self._complete(goal_coaching_request(self.data.goals))
        return text.strip() or GOAL_COACHING_FALLBACK

    # =========================================================================
    # PROFILE
    # =========================================================================

    def _require_profile(self) -> UserProfile:
        if self.data.user is None:
            raise EntityNotFoundError("profile", "user")
        return self.data.user

    def update_profile(self, **fields) -> UserProfile:
        """Change plain profile fields (name, mbti, history, ...)."""
        unknown = set(fields) - EDITABLE_PROFILE_FIELDS
        if unknown:
            raise self._reject(InputValidationError(
                "profile", f"Unknown profile fields: {', '.join(sorted(unknown))}"
            ))
        self._require_profile()
        self._store.apply(lambda d: mutations.update_user_profile(d, **fields))
        return self.data.user

    def set_strength(self, index: int, value: str) -> UserProfile:
        """Fill strength slot `index` (0-based). Empty slots stay as ''."""
        try:
            index = validate_strength_index(index)
        except InputValidationError as e:
            raise self._reject(e)

        strengths = list(self._require_profile().strengths)[:MAX_STRENGTHS]
        strengths += [""] * (index + 1 - len(strengths))
        strengths[index] = (value or "").strip()
        self._store.apply(lambda d: mutations.update_user_profile(d, strengths=strengths))
        return self.data.user

    def set_skills_from_text(self, text: str) -> UserProfile:
        """Comma-separated skills."""
        self._require_profile()
        skills = parse_skills(text)
        self._store.apply(lambda d: mutations.update_user_profile(d, skills=skills))
        return self.data.user

    async def analyze_personality(self) -> Optional[str]:
        """Needs an MBTI type and at least one strength."""
        profile = self._require_profile()
        if not profile.mbti or not profile.filled_strengths:
            raise self._reject(InputValidationError(
                "strengths", "Choose an MBTI type and at least one strength."
            ))
        request = personality_request(profile.mbti, profile.strengths)
        return await self._guarded_profile_text("personality_analysis", request)

    async def summarize_career(self) -> Optional[str]:
        request = career_summary_request(self._require_profile())
        return await self._guarded_profile_text("career_summary", request)

    async def generate_resume(self) -> Optional[str]:
        """Needs career history notes."""
        profile = self._require_profile()
        if not profile.history.strip():
            raise self._reject(InputValidationError("history", "Enter your career history first."))
        return await self._guarded_profile_text("resume_markdown", resume_request(profile))

    # =========================================================================
    # DATA MANAGEMENT
    # =========================================================================

    def export_backup(self) -> tuple[str, str]:
        """
        The stored document text and a dated file name for it.

        Raises:
            NoDataToExportError: If nothing has been stored yet
        """
        text = self._storage.read_document()
        if not text:
            raise NoDataToExportError("There is no saved data to export.")
        filename = backup_filename()
        self._audit_logger.log_backup_exported(filename, len(text.encode("utf-8")))
        return filename, text

    def import_backup(self, text: str, confirmed: bool = False) -> LoadResult:
        """
        Overwrite storage with a backup and reload from it.

        The backup is written verbatim, then loaded through the normalizer
        exactly as on startup. The app returns to the login screen.

        Raises:
            BackupFormatError: If the file is not a usable backup
            ConfirmationRequiredError: If not confirmed
        """
        try:
            validate_backup_document(text)
        except BackupFormatError as e:
            self._audit_logger.log_backup_rejected(str(e))
            raise

        if not confirmed:
            raise ConfirmationRequiredError("import_backup")

        self._storage.write_document(text)
        self._audit_logger.log_backup_imported(len(text.encode("utf-8")))

        result = _read_and_load(self._storage, self._audit_logger)
        self._store.replace(result.data, persist=False)
        self.load_result = result
        self.logout()
        return result

    def reset_data(self, confirmed: bool = False) -> None:
        """Delete the stored document and start over from defaults."""
        if not confirmed:
            raise ConfirmationRequiredError("reset_data")
        self._storage.remove_document()
        self._store.replace(AppData(), persist=False)
        self.load_result = LoadResult(data=self.data, source=LoadSource.EMPTY)
        self._audit_logger.log_document_reset()
        self.logout()


def _read_and_load(storage: DocumentStorageInterface, audit_logger: AuditLogger) -> LoadResult:
    try:
        text = storage.read_document()
    except StorageError as e:
        audit_logger.log_document_parse_failed(error=str(e), stage="read")
        return LoadResult(data=AppData(), source=LoadSource.RECOVERED, error=str(e))
    return load_document(text, audit_logger)


def create_app_components(
    use_storage: bool = True,
    use_ai: bool = True,
) -> AppController:
    """
    Factory function to wire settings, storage, audit logging and the agent.

    Args:
        use_storage: Keep the document on disk. Set to False to hold it
                    in memory only (tests, demos).
        use_ai: Create the Gemini agent if an API key is configured.

    Returns:
        A controller with the stored document loaded
    """
    settings = get_settings()

    storage: DocumentStorageInterface
    if use_storage:
        try:
            storage = LocalFileDocumentStorage(
                settings.storage.document_path,
                write_attempts=settings.storage.write_attempts,
            )
            audit_logger = AuditLogger(JsonLinesAuditStorage(settings.storage.audit_log_path))
        except StorageError as e:
            # Storage not usable - continue in memory
            logger.warning("storage_unavailable", error=str(e))
            storage = InMemoryDocumentStorage()
            audit_logger = AuditLogger(InMemoryAuditStorage())
            audit_logger.log_error(
                error_type=type(e).__name__,
                error_message=str(e),
                details={"data_dir": str(settings.storage.data_dir)},
            )
    else:
        storage = InMemoryDocumentStorage()
        audit_logger = AuditLogger()  # Local-only logging

    agent = None
    if use_ai:
        try:
            agent = GeminiAnnotationAgent(settings.gemini)
        except ValidationError as e:
            # No API key - AI features are disabled
            logger.warning("ai_unavailable", error=str(e))

    return AppController.from_storage(
        storage,
        agent=agent,
        audit_logger=audit_logger,
        app_settings=settings.app,
    )
