"""
Streamlit web interface for the Excel analytics platform.

This module provides the browser UI: sign-in and sign-up, spreadsheet
upload, the per-user file list, dashboard analytics, the sheet viewer with
chart generation, and profile editing.

Module Input:
    - File uploads via Streamlit file_uploader
    - User interactions via Streamlit widgets
    - Configuration from settings module

Module Output:
    - Interactive web UI over the caller's own files
    - Downloads of stored files, processed sheets and chart configurations

Pages:
    - Upload: Validate and store one spreadsheet
    - Files: List, open, download and delete stored files
    - Analytics: Summary figures and charts over the file list
    - Analyze: Sheet preview, chart builder and sheet export
    - Profile: Display name and avatar
"""

from typing import List, Optional

import pandas as pd
import plotly.express as px
import streamlit as st

from EAP.core.exceptions import AnalyticsPlatformError
from EAP.core.logging_config import get_logger, setup_root_logger
from EAP.core.settings import settings
from EAP.services.analytics import file_stats
from EAP.services.auth.cognito_client import AuthSession, CognitoAuthClient
from EAP.services.database.client import RDSClient
from EAP.services.database.repositories import (
    AnalyticsRepository, FileRecord, FileRepository, ProfileRepository
)
from EAP.services.files.file_service import FileService
from EAP.services.processing import chart_builder, spreadsheet_parser
from EAP.services.processing.spreadsheet_parser import SheetData
from EAP.services.profiles import ProfileService
from EAP.services.storage.file_validator import FileValidator
from EAP.services.storage.s3_client import S3Client
from EAP.ui import state

# Setup logging
setup_root_logger()
logger = get_logger(__name__)

# Page configuration
st.set_page_config(
    page_title="Excel Analytics Platform",
    page_icon="📊",
    layout="wide",
    initial_sidebar_state="expanded"
)

STATUS_BADGES = {
    "uploaded": "🟢 uploaded",
    "processing": "🟡 processing",
    "error": "🔴 error",
}


@st.cache_resource
def initialize_services():
    """
    Initialize and cache service instances.

    Returns:
        Tuple: (CognitoAuthClient, FileService, ProfileService, RDSClient)

    Side Effects:
        - Creates service instances
        - Opens a test database connection
        - Logs initialization
    """
    try:
        auth_client = CognitoAuthClient()
        s3_client = S3Client(bucket=settings.s3_bucket_files, prefix=settings.s3_prefix_files)
        rds_client = RDSClient()

        file_service = FileService(
            storage=s3_client,
            files=FileRepository(rds_client),
            analytics=AnalyticsRepository(rds_client),
            validator=FileValidator(),
        )
        profile_service = ProfileService(ProfileRepository(rds_client))

        logger.info("Services initialized successfully")
        return auth_client, file_service, profile_service, rds_client

    except AnalyticsPlatformError as e:
        logger.error(f"Failed to initialize services: {e.message}", extra={"details": e.details})
        st.error(f"❌ Failed to initialize services: {e.message}")
        st.stop()


def show_error(error: AnalyticsPlatformError):
    """One notification per failure: title and message."""
    st.error(f"❌ **{error.title}**: {error.message}")


def current_session() -> Optional[AuthSession]:
    return st.session_state.get("auth_session")


def reset_viewer():
    for key in ("selected_file", "sheets", "download_ready", "pending_delete"):
        st.session_state.pop(key, None)


# ---------------------------------------------------------------------------
# Signed out
# ---------------------------------------------------------------------------

def render_auth(auth_client: CognitoAuthClient, profile_service: ProfileService):
    """Sign in, sign up and confirmation forms."""
    st.title("📊 Excel Analytics Platform")
    st.markdown("Upload spreadsheets, explore their sheets and build charts.")

    sign_in_tab, sign_up_tab, confirm_tab = st.tabs(["Sign In", "Sign Up", "Confirm Account"])

    with sign_in_tab:
        with st.form("sign_in_form"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            submit = st.form_submit_button("Sign In", type="primary", use_container_width=True)

        if submit:
            try:
                with st.spinner("Signing in..."):
                    session = auth_client.sign_in(email.strip(), password)
                    st.session_state["profile"] = profile_service.ensure_profile(session)
                st.session_state["auth_session"] = session
                st.rerun()
            except AnalyticsPlatformError as e:
                show_error(e)

    with sign_up_tab:
        with st.form("sign_up_form"):
            display_name = st.text_input("Display name")
            email = st.text_input("Email", key="sign_up_email")
            password = st.text_input("Password", type="password", key="sign_up_password")
            submit = st.form_submit_button("Sign Up", type="primary", use_container_width=True)

        if submit:
            try:
                confirmed = auth_client.sign_up(email.strip(), password, display_name.strip() or None)
                if confirmed:
                    st.success("✅ Account created. You can sign in now.")
                else:
                    st.success("✅ Check your email for a confirmation code.")
            except AnalyticsPlatformError as e:
                show_error(e)

    with confirm_tab:
        with st.form("confirm_form"):
            email = st.text_input("Email", key="confirm_email")
            code = st.text_input("Confirmation code")
            submit = st.form_submit_button("Confirm", use_container_width=True)

        if submit:
            try:
                auth_client.confirm_sign_up(email.strip(), code.strip())
                st.success("✅ Account confirmed. You can sign in now.")
            except AnalyticsPlatformError as e:
                show_error(e)


# ---------------------------------------------------------------------------
# Signed in
# ---------------------------------------------------------------------------

def render_header(session: AuthSession, auth_client: CognitoAuthClient):
    col1, col2 = st.columns([4, 1])
    with col1:
        st.title("📊 Excel Analytics Platform")
        profile = st.session_state.get("profile")
        name = (profile.display_name if profile else None) or session.email
        st.caption(f"Signed in as **{name}** ({session.email})")

    with col2:
        if st.button("🚪 Sign Out", use_container_width=True):
            try:
                auth_client.sign_out(session)
            except AnalyticsPlatformError as e:
                logger.warning(f"Sign out failed for {session.user_id}: {e.message}")
            reset_viewer()
            st.session_state.pop("auth_session", None)
            st.session_state.pop("profile", None)
            st.rerun()


def render_sidebar(file_service: FileService, rds_client: RDSClient):
    with st.sidebar:
        st.header("⚙️ Configuration")

        st.subheader("S3 Storage")
        st.info(f"**Bucket:** `{file_service.storage.bucket}`")

        st.subheader("RDS Database")
        st.info(f"**Host:** `{rds_client.host}`")
        st.info(f"**Database:** `{rds_client.database}`")
        if state.database_status(rds_client):
            st.success("✅ Database Connected")
        else:
            st.error("❌ Database Connection Failed")

        st.divider()
        st.caption("**Supported formats:** Excel (.xlsx, .xls), CSV")
        st.caption(f"**Max file size:** {file_service.validator.max_file_size_mb} MB")


def render_stats_cards(files: List[FileRecord]):
    stats = file_stats.dashboard_stats(files)
    col1, col2, col3 = st.columns(3)
    col1.metric("Total Files", stats["total_files"])
    col2.metric("Total Size", stats["total_size_label"])
    col3.metric("Analytics Ready", stats["analytics_ready"])


def render_upload_tab(session: AuthSession, file_service: FileService):
    st.header("Upload Spreadsheet")
    st.markdown("Upload an Excel (.xlsx, .xls) or CSV file.")

    uploaded_file = st.file_uploader(
        "Choose a file",
        type=[ext.lstrip(".") for ext in sorted(file_service.validator.allowed_extensions)],
        key=state.upload_widget_key()
    )
    if not uploaded_file:
        return

    col1, col2 = st.columns([3, 1])
    with col1:
        st.write(f"**Filename:** {uploaded_file.name}")
        st.write(f"**Size:** {file_stats.format_file_size(uploaded_file.size)}")
        st.write(f"**Type:** {uploaded_file.type or 'unknown'}")

    with col2:
        if st.button("🚀 Upload", type="primary", use_container_width=True):
            progress_bar = st.progress(0, text="Uploading...")
            try:
                record = file_service.upload(
                    session,
                    uploaded_file.name,
                    uploaded_file.getvalue(),
                    content_type=uploaded_file.type,
                    progress=lambda percent: progress_bar.progress(percent, text=f"Uploading... {percent}%"),
                )
                state.flash(f"✅ {record.original_name} uploaded successfully")
                state.reset_upload_widget()
                st.rerun()
            except AnalyticsPlatformError as e:
                progress_bar.empty()
                show_error(e)


def render_file_row(session: AuthSession, file_service: FileService, record: FileRecord):
    col1, col2, col3, col4, col5 = st.columns([4, 1, 1, 1, 1])
    with col1:
        st.markdown(f"**📄 {record.original_name}**")
        st.caption(
            f"{STATUS_BADGES.get(record.status, record.status)} · "
            f"{file_stats.format_file_size(record.file_size)} · "
            f"{record.upload_date:%Y-%m-%d %H:%M}"
        )

    with col2:
        if st.button("🔍 Analyze", key=f"analyze_{record.id}", use_container_width=True):
            try:
                with st.spinner(f"Processing {record.original_name}..."):
                    sheets = file_service.open_file(session, record)
                st.session_state["selected_file"] = record
                st.session_state["sheets"] = sheets
                state.flash("✅ File ready. Open the Analyze tab.")
                st.rerun()
            except AnalyticsPlatformError as e:
                show_error(e)

    with col3:
        if st.button("⬇️ Download", key=f"download_{record.id}", use_container_width=True):
            try:
                name, data = file_service.download(session, record)
                st.session_state["download_ready"] = {"id": record.id, "name": name, "data": data}
            except AnalyticsPlatformError as e:
                show_error(e)

        ready = st.session_state.get("download_ready")
        if ready and ready["id"] == record.id:
            st.download_button(
                "💾 Save",
                data=ready["data"],
                file_name=ready["name"],
                key=f"save_{record.id}",
                use_container_width=True
            )

    with col4:
        if st.button("🗑️ Delete", key=f"delete_{record.id}", use_container_width=True):
            st.session_state["pending_delete"] = record.id

    if st.session_state.get("pending_delete") == record.id:
        st.warning(f"Delete **{record.original_name}**? This cannot be undone.")
        confirm_col, cancel_col, _ = st.columns([1, 1, 4])
        if confirm_col.button("Confirm", key=f"confirm_delete_{record.id}", type="primary"):
            try:
                file_service.delete(session, record)
                selected = st.session_state.get("selected_file")
                if selected and selected.id == record.id:
                    reset_viewer()
                st.session_state.pop("pending_delete", None)
                st.success(f"✅ {record.original_name} deleted")
                st.rerun()
            except AnalyticsPlatformError as e:
                show_error(e)
        if cancel_col.button("Cancel", key=f"cancel_delete_{record.id}"):
            st.session_state.pop("pending_delete", None)
            st.rerun()


def render_files_tab(session: AuthSession, file_service: FileService, files: List[FileRecord]):
    st.header("Your Files")
    if not files:
        st.info("No files uploaded yet. Upload a spreadsheet to get started.")
        return

    for record in files:
        render_file_row(session, file_service, record)
        st.divider()


def render_analytics_tab(files: List[FileRecord]):
    st.header("Analytics")
    if not files:
        st.info("Upload files to see analytics.")
        return

    summary = file_stats.summary_stats(files)
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Total Files", summary["total_files"])
    col2.metric("Total Size", f"{summary['total_size_mb']} MB")
    col3.metric("Average Size", f"{summary['average_size_mb']} MB")
    col4.metric("Last 7 Days", summary["recent_uploads"])

    left, right = st.columns(2)
    with left:
        st.subheader("File Sizes (MB)")
        sizes = pd.DataFrame(file_stats.file_size_series(files))
        fig = px.bar(
            sizes, x="name", y="size", hover_data=["fullName"],
            labels={"name": "File", "size": "Size (MB)"}
        )
        fig.update_traces(marker_color=chart_builder.CHART_COLORS[0])
        st.plotly_chart(fig, use_container_width=True)

    with right:
        st.subheader("Status Distribution")
        distribution = pd.DataFrame(file_stats.status_distribution(files))
        fig = px.pie(
            distribution, names="status", values="count",
            color_discrete_sequence=chart_builder.CHART_COLORS
        )
        st.plotly_chart(fig, use_container_width=True)

    timeline = file_stats.upload_timeline(files)
    if len(timeline) > 1:
        st.subheader("Upload Timeline")
        fig = px.line(pd.DataFrame(timeline), x="date", y="uploads", markers=True, hover_data=["totalSize"])
        st.plotly_chart(fig, use_container_width=True)


def render_chart_panel(record: FileRecord, sheet: SheetData):
    col1, col2, col3 = st.columns(3)
    chart_type = col1.selectbox(
        "Chart type",
        options=list(chart_builder.CHART_TYPES),
        index=list(chart_builder.CHART_TYPES).index(chart_builder.DEFAULT_CHART_TYPE),
        format_func=chart_builder.CHART_TYPES.get,
        key=f"chart_type_{record.id}_{sheet.name}"
    )
    x_axis = col2.selectbox(
        "X axis", options=sheet.columns, index=None,
        placeholder="Select column", key=f"x_axis_{record.id}_{sheet.name}"
    )
    y_axis = col3.selectbox(
        "Y axis", options=sheet.columns, index=None,
        placeholder="Select column", key=f"y_axis_{record.id}_{sheet.name}"
    )

    data = chart_builder.build_chart_data(sheet.rows, x_axis, y_axis)
    if not data:
        st.info("Select both axes to generate a chart.")
        return

    try:
        st.plotly_chart(
            chart_builder.render_chart(data, chart_type, x_axis, y_axis),
            use_container_width=True
        )
        config = chart_builder.build_chart_config(record.original_name, chart_type, x_axis, y_axis, data)
        st.download_button(
            "⬇️ Download Chart",
            data=chart_builder.chart_config_json(config),
            file_name=chart_builder.chart_file_name(record.original_name, chart_type),
            mime="application/json",
            key=f"chart_download_{record.id}_{sheet.name}"
        )
    except AnalyticsPlatformError as e:
        show_error(e)


def render_analyze_tab(record: FileRecord, sheets: List[SheetData]):
    col1, col2 = st.columns([4, 1])
    col1.header(f"📄 {record.original_name}")
    if col2.button("✖️ Close", use_container_width=True):
        reset_viewer()
        st.rerun()

    if not sheets:
        st.warning("This file contains no data.")
        return

    sheet_name = st.selectbox(
        "Sheet", options=[sheet.name for sheet in sheets], key=f"sheet_{record.id}"
    )
    sheet = next(s for s in sheets if s.name == sheet_name)
    st.caption(f"{sheet.row_count} rows · {len(sheet.columns)} columns")

    preview_tab, chart_tab, download_tab = st.tabs(["Data Preview", "Generate Charts", "Download"])

    with preview_tab:
        st.dataframe(spreadsheet_parser.preview_table(sheet), use_container_width=True)
        if sheet.row_count > settings.preview_max_rows:
            st.caption(f"Showing first {settings.preview_max_rows} of {sheet.row_count} rows")

    with chart_tab:
        render_chart_panel(record, sheet)

    with download_tab:
        for each in sheets:
            try:
                st.download_button(
                    f"⬇️ {each.name}",
                    data=spreadsheet_parser.export_sheet(each),
                    file_name=spreadsheet_parser.processed_file_name(record.original_name, each.name),
                    mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                    key=f"sheet_download_{record.id}_{each.name}"
                )
            except AnalyticsPlatformError as e:
                show_error(e)


def render_profile_tab(session: AuthSession, profile_service: ProfileService):
    st.header("Profile")
    profile = st.session_state.get("profile")
    if profile is None:
        try:
            profile = profile_service.get_profile(session)
            st.session_state["profile"] = profile
        except AnalyticsPlatformError as e:
            show_error(e)

    if profile and profile.avatar_url:
        st.image(profile.avatar_url, width=96)

    with st.form("profile_form"):
        st.text_input("Email", value=session.email, disabled=True)
        display_name = st.text_input("Display name", value=(profile.display_name if profile else "") or "")
        avatar_url = st.text_input("Avatar URL", value=(profile.avatar_url if profile else "") or "")
        submit = st.form_submit_button("💾 Save", type="primary")

    if submit:
        try:
            st.session_state["profile"] = profile_service.update_profile(session, display_name, avatar_url)
            st.success("✅ Profile updated")
        except AnalyticsPlatformError as e:
            show_error(e)


def main():
    """Main Streamlit application entry point."""

    auth_client, file_service, profile_service, rds_client = initialize_services()

    session = current_session()
    if session is None:
        render_auth(auth_client, profile_service)
        return

    render_header(session, auth_client)
    render_sidebar(file_service, rds_client)

    message = state.pop_flash()
    if message:
        st.success(message)

    try:
        files = file_service.list_files(session)
    except AnalyticsPlatformError as e:
        show_error(e)
        files = []

    render_stats_cards(files)

    selected = st.session_state.get("selected_file")
    labels = ["📤 Upload", "📁 Files", "📈 Analytics"]
    if selected:
        labels.append("🔍 Analyze")
    labels.append("👤 Profile")
    tabs = dict(zip(labels, st.tabs(labels)))

    with tabs["📤 Upload"]:
        render_upload_tab(session, file_service)

    with tabs["📁 Files"]:
        render_files_tab(session, file_service, files)

    with tabs["📈 Analytics"]:
        render_analytics_tab(files)

    if selected:
        with tabs["🔍 Analyze"]:
            render_analyze_tab(selected, st.session_state.get("sheets", []))

    with tabs["👤 Profile"]:
        render_profile_tab(session, profile_service)


if __name__ == "__main__":
    main()
