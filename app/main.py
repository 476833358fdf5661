"""
Streamlit Frontend for Tarushiru

A private space to organize yourself: a journal with emotion analysis,
monthly assets and budget, categorized goals, and a career profile.

DESIGN PRINCIPLES:
1. Every change goes through the controller, never straight to the data
2. Destructive actions ask for confirmation first
3. A failure shows one line of text and nothing else changes
4. AI output is shown as written

All data stays in one local JSON document.
"""

import asyncio

import streamlit as st

from src.agents import AIGatewayError
from src.aggregates import (
    asset_trend_series,
    completion_rate,
    entries_for_display,
    find_record,
    flow_breakdown,
    goals_in_category,
)
from src.config import get_settings, validate_all_settings
from src.controller import (
    AppController,
    AuthenticationError,
    ConfirmationRequiredError,
    NoDataToExportError,
    create_app_components,
)
from src.models.app_data import GoalCategory, ViewState
from src.services.storage import StorageError
from src.store import EntityNotFoundError
from src.validation import (
    MAX_STRENGTHS,
    BackupFormatError,
    InputValidationError,
    format_entry_date_input,
)


# Page configuration
st.set_page_config(
    page_title="Tarushiru",
    page_icon="🌙",
    layout="wide",
    initial_sidebar_state="expanded",
)

GOAL_TAB_LABELS = {
    GoalCategory.BEING: "Being",
    GoalCategory.LIFE: "Life",
    GoalCategory.WORK: "Work",
    GoalCategory.WORK_SHORT: "Short-term tasks",
}

VIEW_LABELS = {
    ViewState.JOURNAL: "📓 Journal",
    ViewState.MONEY: "💰 Money",
    ViewState.GOALS: "🎯 Goals",
    ViewState.PROFILE: "👤 Profile",
}

# Errors that are shown to the user as one line
USER_FACING_ERRORS = (
    AIGatewayError,
    AuthenticationError,
    BackupFormatError,
    EntityNotFoundError,
    InputValidationError,
    NoDataToExportError,
    StorageError,
)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_controller() -> AppController:
    """Get or create the controller (cached for the session)."""
    return create_app_components(use_storage=True)


def show_error(error: Exception) -> None:
    if isinstance(error, AIGatewayError):
        st.error("The AI request failed. Please try again later.")
    else:
        st.error(str(error))


def format_yen(amount: int) -> str:
    return f"¥{amount:,}"


def format_delta(delta) -> str:
    return f"{delta:+,}"


def main():
    """Main application entry point."""
    controller = get_controller()

    if controller.load_result and controller.load_result.recovered_from_error:
        st.warning(
            "Saved data could not be read, so the app started with empty data. "
            "The saved file is kept until you make a change."
        )
    elif controller.load_result and controller.load_result.repairs:
        st.warning(
            f"{len(controller.load_result.repairs)} saved item(s) were damaged. "
            f"{controller.load_result.dropped_count} could not be read and were left out; "
            "the others had unreadable fields reset."
        )

    if controller.view == ViewState.AUTH or not controller.is_authenticated:
        render_auth_page(controller)
        return

    st.sidebar.title("🌙 TARUSHIRU")
    st.sidebar.markdown("---")

    views = list(VIEW_LABELS)
    selected = st.sidebar.radio(
        "Navigate to:",
        views,
        index=views.index(controller.view),
        format_func=lambda v: VIEW_LABELS[v],
    )
    if selected != controller.view:
        controller.set_view(selected)

    st.sidebar.markdown("---")
    if st.sidebar.button("Log out"):
        controller.logout()
        st.rerun()

    if controller.view == ViewState.JOURNAL:
        render_journal_page(controller)
    elif controller.view == ViewState.MONEY:
        render_money_page(controller)
    elif controller.view == ViewState.GOALS:
        render_goals_page(controller)
    elif controller.view == ViewState.PROFILE:
        render_profile_page(controller)


# =============================================================================
# AUTH
# =============================================================================

def render_auth_page(controller: AppController):
    st.title("TARUSHIRU")
    st.caption("A space to organize the self you don't show others")

    heading = "Welcome back" if controller.has_account else "Get started"
    button = "Log in" if controller.has_account else "Create account and start"

    with st.form("auth"):
        st.subheader(heading)
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button(button)

    if submitted:
        try:
            controller.login(email, password)
            st.rerun()
        except USER_FACING_ERRORS as e:
            show_error(e)

    st.caption(
        "Data is stored unencrypted on this machine. "
        "Avoid entering sensitive personal information."
    )


# =============================================================================
# JOURNAL
# =============================================================================

def render_journal_page(controller: AppController):
    st.title("📓 Journal")

    with st.form("new_entry", clear_on_submit=True):
        content = st.text_area("How was today?", height=150)
        submitted = st.form_submit_button("Save and analyze")

    if submitted:
        with st.spinner("Analyzing..."):
            try:
                run_async(controller.submit_journal_entry(content, analyze=controller.ai_available))
                st.rerun()
            except USER_FACING_ERRORS as e:
                show_error(e)

    data = controller.data

    points = controller.emotion_points()
    if points:
        st.subheader("Emotion trend")
        st.line_chart(
            {
                "date": [p.date[:10] for p in points],
                "joy": [p.joy for p in points],
                "anxiety": [p.anxiety for p in points],
                "calm": [p.calm for p in points],
            },
            x="date",
        )

    if data.journal and st.button("📈 Analyze recent trends", disabled=not controller.ai_available):
        with st.spinner("Reading your recent entries..."):
            try:
                st.session_state["journal_report"] = run_async(controller.journal_trend_report())
            except USER_FACING_ERRORS as e:
                show_error(e)
    if st.session_state.get("journal_report"):
        with st.expander("Trend report", expanded=True):
            st.markdown(st.session_state["journal_report"])

    st.subheader("Entries")
    if not data.journal:
        st.info("No entries yet.")

    for entry in entries_for_display(data.journal):
        with st.container(border=True):
            editing = st.session_state.get("editing_entry") == entry.id
            if editing:
                new_content = st.text_area("Content", entry.content, key=f"edit_content_{entry.id}")
                new_date = st.text_input(
                    "Date (YYYY-MM-DDTHH:MM)", format_entry_date_input(entry.date), key=f"edit_date_{entry.id}"
                )
                col1, col2 = st.columns(2)
                if col1.button("Save", key=f"save_{entry.id}"):
                    try:
                        controller.edit_journal_entry(entry.id, new_content, new_date)
                        st.session_state.pop("editing_entry", None)
                        st.rerun()
                    except USER_FACING_ERRORS as e:
                        show_error(e)
                if col2.button("Cancel", key=f"cancel_{entry.id}"):
                    st.session_state.pop("editing_entry", None)
                    st.rerun()
                continue

            st.caption(format_entry_date_input(entry.date).replace("T", " "))
            st.write(entry.content)
            if entry.ai_comment:
                st.info(entry.ai_comment)
            if entry.analysis and entry.analysis.themes:
                st.caption("Themes: " + ", ".join(entry.analysis.themes))

            col1, col2 = st.columns(2)
            if col1.button("Edit", key=f"edit_{entry.id}"):
                st.session_state["editing_entry"] = entry.id
                st.rerun()
            if controller.ai_available and col2.button("Re-analyze", key=f"reanalyze_{entry.id}"):
                with st.spinner("Analyzing..."):
                    try:
                        run_async(controller.reanalyze_journal_entry(entry.id))
                        st.rerun()
                    except USER_FACING_ERRORS as e:
                        show_error(e)


# =============================================================================
# MONEY
# =============================================================================

def render_money_page(controller: AppController):
    st.title("💰 Money")
    stock_tab, flow_tab = st.tabs(["Assets (stock)", "Budget (flow)"])
    with stock_tab:
        render_assets_tab(controller)
    with flow_tab:
        render_budget_tab(controller)

    st.markdown("---")
    if st.button("🤖 AI analysis of assets and budget", disabled=not controller.ai_available):
        with st.spinner("Analyzing..."):
            try:
                st.session_state["money_report"] = run_async(controller.money_report())
            except USER_FACING_ERRORS as e:
                show_error(e)
    if st.session_state.get("money_report"):
        st.markdown(st.session_state["money_report"])


def render_assets_tab(controller: AppController):
    default_month = controller.asset_summary().month
    month = st.text_input("Month (YYYY-MM)", default_month, key="asset_month")
    try:
        summary = controller.asset_summary(month)
    except USER_FACING_ERRORS as e:
        show_error(e)
        return

    col1, col2, col3 = st.columns(3)
    col1.metric("Total assets", format_yen(summary.total))
    if summary.month_over_month is not None:
        col2.metric("vs last month", format_yen(summary.total), format_delta(summary.month_over_month))
    if summary.year_over_year is not None:
        col3.metric("vs last year", format_yen(summary.total), format_delta(summary.year_over_year))

    data = controller.data
    record = find_record(data.assets, summary.month)
    values = record.values if record else {}

    st.subheader("Balances")
    for category in data.money_config.asset_categories:
        col1, col2 = st.columns([4, 1])
        raw = col1.text_input(
            category,
            str(values.get(category, 0)),
            key=f"asset_{summary.month}_{category}",
        )
        if raw != str(values.get(category, 0)):
            try:
                controller.set_asset_value(summary.month, category, raw)
                st.rerun()
            except USER_FACING_ERRORS as e:
                show_error(e)
        if col2.button("🗑️", key=f"delete_category_{category}"):
            st.session_state["confirm_category"] = category

    pending = st.session_state.get("confirm_category")
    if pending:
        st.warning(f"Delete the category '{pending}'? Recorded balances are kept.")
        col1, col2 = st.columns(2)
        if col1.button("Delete", key="confirm_category_yes"):
            controller.remove_asset_category(pending, confirmed=True)
            st.session_state.pop("confirm_category", None)
            st.rerun()
        if col2.button("Keep", key="confirm_category_no"):
            st.session_state.pop("confirm_category", None)
            st.rerun()

    with st.form("add_category", clear_on_submit=True):
        name = st.text_input("New category")
        if st.form_submit_button("Add category"):
            controller.add_asset_category(name)
            st.rerun()

    if summary.breakdown:
        st.subheader("Breakdown")
        st.bar_chart(
            {
                "category": [s.category for s in summary.breakdown],
                "value": [s.value for s in summary.breakdown],
            },
            x="category",
        )

    series = asset_trend_series(data.assets)
    if series:
        st.subheader("Trend")
        st.line_chart(
            {"month": [p.month for p in series], "total": [p.total for p in series]},
            x="month",
        )


def render_budget_tab(controller: AppController):
    budget = controller.data.budget_profile

    income = st.text_input("Monthly income", str(budget.monthly_income), key="income")
    if income != str(budget.monthly_income):
        try:
            controller.set_monthly_income(income)
            st.rerun()
        except USER_FACING_ERRORS as e:
            show_error(e)

    variable = st.text_input("Variable budget", str(budget.variable_budget), key="variable_budget")
    if variable != str(budget.variable_budget):
        try:
            controller.set_variable_budget(variable)
            st.rerun()
        except USER_FACING_ERRORS as e:
            show_error(e)

    st.subheader("Fixed costs")
    for item in budget.fixed_costs:
        col1, col2, col3 = st.columns([3, 2, 1])
        col1.write(item.name)
        col2.write(format_yen(item.amount))
        if col3.button("🗑️", key=f"fixed_{item.id}"):
            controller.remove_fixed_cost(item.id)
            st.rerun()

    with st.form("add_fixed_cost", clear_on_submit=True):
        col1, col2 = st.columns(2)
        name = col1.text_input("Name")
        amount = col2.text_input("Amount")
        if st.form_submit_button("Add fixed cost"):
            try:
                controller.add_fixed_cost(name, amount)
                st.rerun()
            except USER_FACING_ERRORS as e:
                show_error(e)

    summary = controller.budget_summary()
    col1, col2, col3 = st.columns(3)
    col1.metric("Income", format_yen(summary.income))
    col2.metric("Expenses", format_yen(summary.expenses))
    col3.metric("Surplus", format_yen(summary.surplus))
    if summary.is_deficit:
        st.error("Planned expenses exceed income.")

    slices = flow_breakdown(controller.data.budget_profile)
    st.bar_chart(
        {"item": [s.label for s in slices], "amount": [s.amount for s in slices]},
        x="item",
    )


# =============================================================================
# GOALS
# =============================================================================

def render_goals_page(controller: AppController):
    st.title("🎯 Goals")

    goals = controller.data.goals
    if goals:
        st.progress(completion_rate(goals), text=f"{completion_rate(goals):.0%} done")

    tabs = st.tabs(list(GOAL_TAB_LABELS.values()))
    for tab, category in zip(tabs, GOAL_TAB_LABELS):
        with tab:
            render_goal_category(controller, category)

    st.markdown("---")
    if st.button("🤖 Coaching", disabled=not controller.ai_available):
        with st.spinner("Thinking..."):
            try:
                st.session_state["coaching"] = run_async(controller.goal_coaching())
            except USER_FACING_ERRORS as e:
                show_error(e)
    if st.session_state.get("coaching"):
        st.info(st.session_state["coaching"])


def render_goal_category(controller: AppController, category: GoalCategory):
    with st.form(f"add_goal_{category.value}", clear_on_submit=True):
        title = st.text_input("New goal")
        if st.form_submit_button("Add"):
            try:
                controller.add_goal(title, category)
                st.rerun()
            except USER_FACING_ERRORS as e:
                show_error(e)

    for goal in goals_in_category(controller.data.goals, category):
        col1, col2, col3 = st.columns([1, 6, 1])
        done = col1.checkbox("Done", value=goal.is_done, key=f"goal_done_{goal.id}", label_visibility="collapsed")
        if done != goal.is_done:
            controller.toggle_goal(goal.id)
            st.rerun()

        title = col2.text_input("Title", goal.title, key=f"goal_title_{goal.id}", label_visibility="collapsed")
        if title != goal.title:
            try:
                controller.rename_goal(goal.id, title)
                st.rerun()
            except USER_FACING_ERRORS as e:
                show_error(e)

        if col3.button("🗑️", key=f"goal_delete_{goal.id}"):
            st.session_state["confirm_goal"] = goal.id

    pending = st.session_state.get("confirm_goal")
    if pending and any(g.id == pending and g.category == category for g in controller.data.goals):
        st.warning("Delete this goal?")
        col1, col2 = st.columns(2)
        if col1.button("Delete", key=f"confirm_goal_yes_{category.value}"):
            controller.delete_goal(pending, confirmed=True)
            st.session_state.pop("confirm_goal", None)
            st.rerun()
        if col2.button("Keep", key=f"confirm_goal_no_{category.value}"):
            st.session_state.pop("confirm_goal", None)
            st.rerun()


# =============================================================================
# PROFILE
# =============================================================================

def render_profile_page(controller: AppController):
    st.title("👤 Profile")
    profile = controller.data.user

    with st.form("profile"):
        name = st.text_input("Name", profile.name)
        mbti = st.text_input("MBTI type", profile.mbti)
        strengths = [
            st.text_input(
                f"Strength {i + 1}",
                profile.strengths[i] if i < len(profile.strengths) else "",
            )
            for i in range(MAX_STRENGTHS)
        ]
        skills = st.text_input("Skills (comma separated)", ", ".join(profile.skills))
        career_strengths = st.text_area("Strengths you recognize in yourself", profile.career_strengths)
        interests = st.text_area("Interests", profile.interests)
        values = st.text_area("What matters to you", profile.values)
        environment = st.text_area("Ideal environment", profile.environment)
        history = st.text_area("Career history notes", profile.history, height=200)
        if st.form_submit_button("Save profile"):
            try:
                controller.update_profile(
                    name=name,
                    mbti=mbti,
                    history=history,
                    career_strengths=career_strengths,
                    interests=interests,
                    values=values,
                    environment=environment,
                )
                for index, value in enumerate(strengths):
                    controller.set_strength(index, value)
                controller.set_skills_from_text(skills)
                st.success("Saved.")
            except USER_FACING_ERRORS as e:
                show_error(e)

    render_profile_ai(controller)
    render_data_management(controller)


def render_profile_ai(controller: AppController):
    st.subheader("AI insights")
    actions = [
        ("Personality analysis", controller.analyze_personality, "personality_analysis"),
        ("Career summary", controller.summarize_career, "career_summary"),
        ("Generate resume", controller.generate_resume, "resume_markdown"),
    ]
    for label, action, field in actions:
        if st.button(label, disabled=not controller.ai_available):
            with st.spinner("Generating..."):
                try:
                    run_async(action())
                except USER_FACING_ERRORS as e:
                    show_error(e)
        text = getattr(controller.data.user, field)
        if text:
            with st.expander(label, expanded=False):
                st.markdown(text)


def render_data_management(controller: AppController):
    st.subheader("Data")

    try:
        filename, text = controller.export_backup()
        st.download_button("⬇️ Export backup", text, file_name=filename, mime="application/json")
    except NoDataToExportError as e:
        st.caption(str(e))

    upload = st.file_uploader("Restore from backup", type=["json"])
    if upload is not None:
        confirmed = st.checkbox("Overwrite the current data with this backup")
        if st.button("Restore"):
            try:
                controller.import_backup(upload.getvalue().decode("utf-8"), confirmed=confirmed)
                st.rerun()
            except ConfirmationRequiredError:
                st.warning("Tick the checkbox to confirm the restore.")
            except (UnicodeDecodeError, *USER_FACING_ERRORS) as e:
                show_error(e)

    st.markdown("---")
    confirm_reset = st.checkbox("I really want to delete all data")
    if st.button("Delete all data", type="primary"):
        try:
            controller.reset_data(confirmed=confirm_reset)
            st.rerun()
        except ConfirmationRequiredError:
            st.warning("Tick the checkbox to confirm deleting everything.")

    with st.expander("Connection status"):
        status = validate_all_settings()
        for name, key in [("Gemini (AI)", "gemini"), ("Local storage", "storage"), ("App", "app")]:
            if status.get(key, False):
                st.success(f"✅ {name}")
            else:
                st.error(f"❌ {name} - {status.get(f'{key}_error', 'Not configured')}")

    if get_settings().app.debug_mode:
        with st.expander("Raw document"):
            st.json(controller.data.to_json())
        with st.expander("Recent activity"):
            for event in controller.recent_activity():
                st.caption(f"{event.timestamp:%Y-%m-%d %H:%M} | {event.severity.value} | {event.description}")


if __name__ == "__main__":
    main()
