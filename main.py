from fasthtml.common import *
from monsterui.all import *
import time
from datetime import datetime

import config
from ai_services import GeminiAnalyzer, generate_report_summary
from css import css
from errors import FotoFlowError, RecordNotFoundError
from logging_config import setup_logging, get_logger
from models import UserRole, UserStatus
from store import RecordStore
from utils import *
from workflow import CollectionWorkflow, ImageFile, WorkflowStatus, MAX_IMAGE_MB, validate_image_file

setup_logging(config.LOG_LEVEL)
logger = get_logger(__name__)

store = RecordStore()
if config.SEED_DEMO_DATA:
    store.seed_demo_data()

analyzer = GeminiAnalyzer()

# One collection workflow per browser session, released when finished or idle too long
workflows = {}
workflow_seen = {}


async def release_workflow(sid):
    wf = workflows.pop(sid, None)
    workflow_seen.pop(sid, None)
    if wf is not None:
        await wf.aclose()
        logger.debug(f"Released collection workflow for session {sid}")


async def prune_workflows(now: float):
    expired = [sid for sid, seen in workflow_seen.items() if now - seen > config.WORKFLOW_TTL]
    for sid in expired:
        await release_workflow(sid)


async def get_workflow(session) -> CollectionWorkflow:
    sid = session.get("sid")
    now = time.monotonic()
    await prune_workflows(now)
    if sid not in workflows:
        workflows[sid] = CollectionWorkflow(
            analyzer,
            on_complete=store.append,
            get_user_id=lambda: store.current_user().id,
        )
    workflow_seen[sid] = now
    return workflows[sid]


PAGE_TITLES = {
    "dashboard": f"Dashboard - {config.APP_NAME}",
    "collection": f"Collection - {config.APP_NAME}",
    "users": f"Users - {config.APP_NAME}",
    "reports": f"Reports - {config.APP_NAME}",
}

STATUS_BADGES = {
    UserStatus.ACTIVE: ("Active", "bg-emerald-50 text-emerald-700 border border-emerald-200"),
    UserStatus.INACTIVE: ("Blocked", "bg-red-50 text-red-700 border border-red-200"),
    UserStatus.PENDING: ("Awaiting Approval", "bg-amber-50 text-amber-700 border border-amber-200 animate-pulse"),
}


# SPA Components
def create_nav_section(active: str = "dashboard", swap_oob: bool = False):
    pending = store.pending_user_count()
    nav_items = [
        ("dashboard", "layout-dashboard", "Dashboard", None),
        ("collection", "camera", "Vehicle Collection", None),
        ("users", "users", "Users", pending or None),
        ("reports", "file-text", "Reports", None),
    ]
    return Div(
        *[
            Button(
                UkIcon(icon, height=16, width=16, cls="mr-2"),
                label,
                *([Span(str(badge), cls="ml-auto text-xs px-2 py-0.5 rounded-full bg-amber-500 text-white")] if badge else []),
                hx_get=f"/content/{page}",
                hx_target="#main-content",
                cls=(ButtonT.primary if page == active else ButtonT.secondary, "w-full justify-start"),
            )
            for page, icon, label, badge in nav_items
        ],
        id="nav-section",
        cls="space-y-2",
        hx_swap_oob="true" if swap_oob else "false",
    )


def create_sidebar(user):
    return Div(
        Card(
            CardHeader(H4(config.APP_NAME)),
            CardBody(create_nav_section()),
            cls=(CardT.default, "mb-6")
        ),
        Card(
            CardBody(
                DivLAligned(
                    Img(src=user.avatar, alt=user.name, cls="w-10 h-10 rounded-full object-cover") if user.avatar else UkIcon("user", height=24, width=24),
                    Div(
                        Div(user.name, cls=TextT.medium),
                        Div(user.role.value, cls=TextPresets.muted_sm),
                    ),
                    cls="space-x-3"
                ),
                Button(
                    UkIcon("shield", height=14, width=14, cls="mr-2"),
                    "Admin Panel",
                    hx_get="/modal/admin",
                    hx_target="#modal-container",
                    cls=(ButtonT.ghost, "w-full justify-start mt-4")
                ),
            ),
            cls=(CardT.default, "mb-6")
        ),
        cls="bg-muted border-r border-border p-4 overflow-y-auto max-w-xs md:block hidden md:relative absolute top-0 left-0 h-full z-40 no-print",
        id="sidebar",
    )


def session_before(req, session):
    if not session.get("sid"):
        session["sid"] = generate_uuid()

bware = Beforeware(session_before, skip=[r"/favicon\.ico", r"/static/.*", r".*\.css", r".*\.js"])

hdrs = Theme.blue.headers()
hdrs.append(Script(src="https://unpkg.com/hyperscript.org@0.9.14"))
hdrs.append(Style(css))

app = FastHTML(
    before=bware,
    hdrs=hdrs,
    pico=False,
    secret_key=config.SESSION_SECRET,
)
rt = app.route


@rt
def index(session):
    user = store.current_user()
    store.record_access(user.id)
    return Title(PAGE_TITLES["dashboard"]), Container(
        Button(
            UkIcon("panel-left", height=18, width=18),
            id="mobile-menu-toggle",
            cls="fixed top-20 left-0 z-50 md:hidden p-3 rounded-r-lg bg-primary text-primary-foreground shadow-lg hover:bg-primary/90 border-l-0 no-print",
            _="on click toggle .hidden on #sidebar then toggle .hidden on #mobile-overlay"
        ),
        NavBar(
            DivRAligned(
                Span(f"Hello, {first_name(user.name)}", cls="mr-4 hidden sm:inline"),
            ),
            brand=H3(config.APP_NAME),
            cls="no-print"
        ),
        Div(
            create_sidebar(user),
            Div(
                dashboard_content(),
                id="main-content",
                cls="p-4 overflow-y-auto flex-1 md:ml-0",
            ),
            Div(
                cls="fixed inset-0 bg-black/50 z-30 md:hidden hidden",
                id="mobile-overlay",
                _="on click add .hidden to #sidebar then add .hidden to me"
            ),
            cls="flex min-h-screen relative"
        ),
        Div(id="modal-container"),
    )


@rt("/modal/close")
def modal_close(session):
    """Close modal by returning empty content"""
    session.pop("admin_unlocked", None)
    return ""


# Dashboard

def stat_card(title: str, value, sub: str, icon: str, color: str):
    return Card(
        CardBody(
            DivFullySpaced(
                Div(
                    P(title, cls=TextPresets.muted_sm),
                    H2(str(value), cls="text-2xl font-bold mt-2"),
                    P(sub, cls="text-xs text-green-600 mt-1 font-medium"),
                ),
                Div(UkIcon(icon, height=24, width=24), cls=f"p-3 rounded-lg {color} text-white"),
            )
        ),
        cls=CardT.hover
    )


def dashboard_content():
    stats = store.dashboard_stats()
    user = store.current_user()
    most = max([d["photos"] for d in stats["photos_by_user"]], default=0)

    ranking_colors = [
        "bg-yellow-100 text-yellow-700 ring-2 ring-yellow-200",
        "bg-gray-200 text-gray-700 ring-2 ring-gray-300",
        "bg-orange-100 text-orange-700 ring-2 ring-orange-200",
    ]

    return Container(
        Card(
            CardBody(
                H1(f"Hello, {first_name(user.name)}!"),
                P(
                    f"Welcome to {config.APP_NAME}. Here you have an overview of all collections, "
                    "performance metrics and fleet status.",
                    cls="text-slate-300 max-w-xl"
                ),
            ),
            cls="bg-slate-900 text-white mb-6"
        ),
        Section(
            H3("Key Metrics"),
            Grid(
                stat_card("Total Photos", stats["total_photos"], "Stored in the system", "camera", "bg-blue-500"),
                stat_card("Active Users", stats["active_users"], "Access granted", "users", "bg-emerald-500"),
                stat_card("Collections Today", stats["today_photos"], "Last 24h", "trending-up", "bg-amber-500"),
                stat_card("Reports", "Ready", "Export available", "file-check", "bg-purple-500"),
                cols=4
            ),
            cls=SectionT.default
        ),
        Section(
            Grid(
                Card(
                    CardHeader(H4("Productivity by User")),
                    CardBody(
                        *(
                            [
                                Div(
                                    DivFullySpaced(
                                        Span(d["name"], cls=TextT.medium),
                                        Strong(str(d["photos"])),
                                    ),
                                    Div(
                                        Div(cls="bg-blue-500 h-3 rounded", style=f"width: {round(d['photos'] * 100 / most)}%"),
                                        cls="w-full bg-gray-100 rounded h-3 mt-1"
                                    ),
                                    cls="mb-4"
                                )
                                for d in stats["photos_by_user"]
                            ]
                            if stats["photos_by_user"]
                            else [P("No collection data available.", cls=TextPresets.muted_sm)]
                        ),
                        id="productivity-chart"
                    ),
                    cls=CardT.default
                ),
                Card(
                    CardHeader(DivLAligned(UkIcon("trophy", height=20, width=20, cls="text-yellow-500"), H4("Collection Ranking (Top 10)"))),
                    CardBody(
                        *(
                            [
                                DivFullySpaced(
                                    DivLAligned(
                                        Div(str(index + 1),
                                            cls="w-8 h-8 rounded-full flex items-center justify-center font-bold text-sm "
                                                + (ranking_colors[index] if index < 3 else "bg-white border text-gray-500")),
                                        Img(src=item["user"].avatar, alt=item["user"].name, cls="w-10 h-10 rounded-full object-cover"),
                                        Div(
                                            Div(item["user"].name, cls=TextT.medium),
                                            Div(item["user"].role.value, cls=TextPresets.muted_sm),
                                        ),
                                        cls="space-x-3"
                                    ),
                                    Div(
                                        Div(str(item["photo_count"]), cls="text-lg font-bold text-blue-600"),
                                        Div("photos", cls=TextPresets.muted_sm),
                                        cls="text-right"
                                    ),
                                    cls="p-3 mb-2 rounded-lg border border-border"
                                )
                                for index, item in enumerate(stats["ranking"])
                            ]
                            if stats["ranking"]
                            else [P("No collection data available.", cls=TextPresets.muted_sm)]
                        ),
                        id="ranking"
                    ),
                    cls=CardT.default
                ),
                cols=2
            ),
            cls=SectionT.default
        ),
        cls=ContainerT.xl
    )


@rt("/content/dashboard")
def content_dashboard():
    return Title(PAGE_TITLES["dashboard"]), dashboard_content(), create_nav_section("dashboard", swap_oob=True)


# Collection

def error_banner(wf: CollectionWorkflow):
    if not wf.error:
        return None
    return Alert(
        DivLAligned(
            UkIcon("triangle-alert", height=20, width=20),
            Div(Strong("Attention"), P(wf.error)),
            Button(
                UkIcon("x", height=16, width=16),
                hx_post="/collection/dismiss-error",
                hx_target="#collection-panel",
                hx_swap="outerHTML",
                cls=(ButtonT.ghost, "ml-auto"),
            ),
            cls="space-x-3"
        ),
        cls=AlertT.error,
        id="collection-error"
    )


def idle_view():
    return Div(
        Form(
            hx_encoding="multipart/form-data",
            hx_post="/collection/upload",
            hx_target="#collection-panel",
            hx_swap="outerHTML",
        )(
            UploadZone(
                DivVStacked(
                    UkIcon("camera", height=40, width=40, cls="mx-auto text-primary mb-4"),
                    H3("Capture Vehicle"),
                    P("Take a front or rear photo for the best plate reading.", cls=TextPresets.muted_sm),
                    P("Select or take a photo", cls=TextPresets.muted_sm + " mt-2"),
                    cls="text-center py-12"
                ),
                Input(
                    type="file",
                    name="photo",
                    accept="image/*",
                    capture="environment",
                    _="on change trigger submit on closest <form/>"
                )
            ),
        ),
        Grid(
            Card(CardBody(Strong("Framing"), P("Keep the plate centered and avoid steep angles.", cls=TextPresets.muted_sm))),
            Card(CardBody(Strong("Lighting"), P("Avoid strong shadows or excessive glare on the plate.", cls=TextPresets.muted_sm))),
            Card(CardBody(Strong("Size"), P(f"High resolution images up to {MAX_IMAGE_MB}MB are accepted.", cls=TextPresets.muted_sm))),
            cols=3,
            cls="mt-6"
        ),
    )


def review_form(wf: CollectionWorkflow):
    analysis = wf.analysis
    saving = wf.status == WorkflowStatus.SAVING

    def field_input(field: str, **kwargs):
        return dict(
            name=field,
            hx_put=f"/collection/field/{field}",
            hx_trigger="keyup changed delay:300ms",
            hx_swap="none",
            disabled=saving,
            **kwargs
        )

    if saving:
        footer = Div(
            DivFullySpaced(Span("Saving data...", cls=TextPresets.muted_sm), Span(f"{wf.progress}%")),
            Progress(value=str(wf.progress), max="100", cls="w-full"),
            id="save-progress",
        )
    else:
        footer = Button(
            UkIcon("save", height=20, width=20, cls="mr-2"),
            "Confirm Collection",
            hx_post="/collection/save",
            hx_include="#review-form",
            hx_target="#collection-panel",
            hx_swap="outerHTML",
            cls=(ButtonT.primary, "w-full"),
        )

    return Form(id="review-form")(
        DivFullySpaced(
            DivLAligned(UkIcon("circle-check", height=20, width=20, cls="text-green-500"), H4("Inspection Data")),
            Label("AUTO-ID", cls=LabelT.secondary),
        ),
        Div(
            FormLabel("License Plate"),
            Input(value=analysis.license_plate, placeholder="AAA-0000",
                  cls="font-mono text-xl font-bold uppercase tracking-widest text-center",
                  **field_input("license_plate")),
            *([Small("Plate not detected", cls="text-amber-600")] if not analysis.license_plate and not saving else []),
            cls="mt-4"
        ),
        Div(
            FormLabel("Model / Make"),
            Input(value=analysis.vehicle_model, placeholder="e.g. Toyota Corolla", **field_input("vehicle_model")),
            cls="mt-4"
        ),
        Div(
            FormLabel("Technical Description"),
            TextArea(analysis.description, placeholder="Add details about the vehicle condition...",
                     rows=4, **field_input("description")),
            cls="mt-4"
        ),
        Div(
            FormLabel("Tags"),
            Input(value=", ".join(analysis.tags), placeholder="Comma separated", **field_input("tags")),
            cls="mt-4"
        ),
        Div(footer, cls="pt-4 mt-4"),
    )


def collection_panel(wf: CollectionWorkflow):
    status = wf.status
    polling = {}
    if status in (WorkflowStatus.ANALYZING, WorkflowStatus.SAVING) or (status == WorkflowStatus.SUCCESS and not wf.handed_off):
        polling = dict(hx_get="/collection/status", hx_trigger="every 300ms", hx_swap="outerHTML")

    if status == WorkflowStatus.IDLE:
        body = idle_view()
    else:
        image_column = Div(
            Div(
                Img(src=wf.preview, alt="Preview",
                    cls="w-full h-full object-contain" + (" opacity-50" if status == WorkflowStatus.ANALYZING else ""))
                if wf.preview else Div(cls="w-full h-64 bg-gray-900 rounded-lg"),
                *(
                    [Div(
                        Loading(cls=LoadingT.lg),
                        P("Analyzing image...", cls="text-white font-bold text-lg"),
                        P("Identifying model and reading plate...", cls="text-blue-200 text-sm mt-2"),
                        cls="absolute inset-0 flex flex-col items-center justify-center p-4 text-center"
                    )]
                    if status == WorkflowStatus.ANALYZING else []
                ),
                cls="relative w-full aspect-video bg-gray-900 rounded-lg overflow-hidden"
            ),
            *(
                [Button(
                    UkIcon("camera", height=18, width=18, cls="mr-2"),
                    "Take Another Photo",
                    hx_post="/collection/retake",
                    hx_target="#collection-panel",
                    hx_swap="outerHTML",
                    cls=(ButtonT.secondary, "w-full mt-4"),
                )]
                if status in (WorkflowStatus.REVIEWING, WorkflowStatus.ANALYZING) else []
            ),
        )
        if wf.analysis is not None:
            details_column = review_form(wf)
        else:
            details_column = Div(
                Div(cls="h-4 w-3/4 bg-gray-200 rounded animate-pulse mx-auto"),
                Div(cls="h-4 w-1/2 bg-gray-200 rounded animate-pulse mx-auto mt-3"),
                Div(cls="h-24 w-full bg-gray-200 rounded animate-pulse mt-6"),
                cls="p-8 border-2 border-dashed border-gray-100 rounded-lg"
            )
        body = Grid(image_column, details_column, cols=2)

    overlay = None
    if status == WorkflowStatus.SUCCESS:
        overlay = Div(
            UkIcon("circle-check", height=64, width=64, cls="text-green-600 mb-4"),
            H2("Collection Saved!"),
            P("Redirecting to reports...", cls=TextPresets.muted_sm),
            # Hand-off done; leave for the reports page
            *([Div(hx_post="/collection/finish", hx_trigger="load", hx_target="#main-content")] if wf.handed_off else []),
            cls="absolute inset-0 bg-white/90 z-20 flex flex-col items-center justify-center"
        )

    return Div(
        error_banner(wf),
        Card(CardBody(body, overlay, cls="relative overflow-hidden")),
        id="collection-panel",
        data_status=status.value,
        **polling
    )


def collection_content(wf: CollectionWorkflow):
    return Container(
        Section(
            H1("Vehicle Collection"),
            Subtitle("Capture the vehicle photo for automatic plate and model identification."),
            cls=SectionT.default
        ),
        collection_panel(wf),
        cls=ContainerT.lg
    )


@rt("/content/collection")
async def content_collection(session):
    wf = await get_workflow(session)
    if wf.status == WorkflowStatus.SUCCESS and wf.handed_off:
        wf.reset()
    return Title(PAGE_TITLES["collection"]), collection_content(wf), create_nav_section("collection", swap_oob=True)


@rt("/collection/upload")
async def collection_upload(request, session):
    """Receive the photo and start the analysis in the background"""
    wf = await get_workflow(session)
    form = await request.form()
    upload = form.get("photo")
    if upload is None or not getattr(upload, "filename", None):
        return Alert("No file selected", cls=AlertT.error)

    file = upload
    if wf.status == WorkflowStatus.IDLE and validate_image_file(upload) is None:
        # The upload is closed once the response is sent
        file = ImageFile(upload.filename, upload.content_type or "", await upload.read())
    wf.select_file(file)
    return collection_panel(wf)


@rt("/collection/status")
async def collection_status(session):
    return collection_panel(await get_workflow(session))


@rt("/collection/field/{field}", methods=["PUT"])
async def update_collection_field(field: str, request, session):
    wf = await get_workflow(session)
    form = await request.form()
    try:
        wf.update_field(field, form.get(field, ""))
    except (FotoFlowError, ValueError) as e:
        logger.warning(f"Field update rejected: {e}")
    return ""


@rt("/collection/save", methods=["POST"])
async def collection_save(request, session):
    """Apply the submitted fields and start the upload"""
    wf = await get_workflow(session)
    form = await request.form()
    confirm_empty_plate = form.get("confirm_empty_plate") == "true"
    try:
        for field in ("license_plate", "vehicle_model", "description", "tags"):
            if field in form:
                wf.update_field(field, form.get(field))
        started = wf.confirm_save(confirm_empty_plate=confirm_empty_plate)
    except (FotoFlowError, ValueError) as e:
        logger.warning(f"Save rejected: {e}")
        return collection_panel(wf)

    if started:
        return collection_panel(wf), Div(id="modal-container", hx_swap_oob="true")

    return collection_panel(wf), Div(
        Modal(
            P("The license plate is empty. Do you want to continue anyway?"),
            header=H3("Empty License Plate"),
            footer=Div(
                Button(
                    "Continue",
                    hx_post="/collection/save",
                    hx_vals='{"confirm_empty_plate": "true"}',
                    hx_target="#collection-panel",
                    hx_swap="outerHTML",
                    cls=ButtonT.primary
                ),
                ModalCloseButton(
                    "Cancel",
                    hx_get="/modal/close",
                    hx_target="#modal-container",
                    hx_swap="innerHTML",
                    htmx=True,
                    cls=ButtonT.secondary
                ),
                cls="flex gap-2 justify-end"
            ),
            open=True
        ),
        id="modal-container",
        hx_swap_oob="true"
    )


@rt("/collection/retake", methods=["POST"])
async def collection_retake(session):
    wf = await get_workflow(session)
    try:
        wf.retake()
    except FotoFlowError as e:
        logger.warning(f"Retake rejected: {e}")
    return collection_panel(wf)


@rt("/collection/dismiss-error", methods=["POST"])
async def collection_dismiss_error(session):
    wf = await get_workflow(session)
    wf.clear_error()
    return collection_panel(wf)


@rt("/collection/finish", methods=["POST"])
async def collection_finish(session):
    """Release the workflow once its record reached the store and show the reports"""
    wf = await get_workflow(session)
    if wf.status == WorkflowStatus.SUCCESS and wf.handed_off:
        await release_workflow(session.get("sid"))
    return Title(PAGE_TITLES["reports"]), reports_content(), create_nav_section("reports", swap_oob=True)


# Users

def status_badge(status: UserStatus):
    label, cls = STATUS_BADGES[status]
    return Span(label, cls=f"inline-flex items-center px-2.5 py-1 rounded-full text-xs font-medium {cls}")


def user_rows(user):
    is_active = user.status == UserStatus.ACTIVE
    history_id = f"history-{user.id}"
    return (
        Tr(
            Td(
                DivLAligned(
                    Img(src=user.avatar, alt="", cls="w-10 h-10 rounded-full bg-gray-200 object-cover"),
                    Div(Div(user.name, cls=TextT.medium), Div(user.email, cls=TextPresets.muted_sm)),
                    cls="space-x-3"
                )
            ),
            Td(Label(user.role.value, cls=LabelT.primary if user.role == UserRole.ADMIN else LabelT.secondary)),
            Td(Div(format_date(user.created_at)), Small(format_time(user.created_at), cls=TextPresets.muted_sm)),
            Td(status_badge(user.status)),
            Td(
                DivRAligned(
                    Button(
                        UkIcon("lock" if is_active else "lock-open", height=14, width=14, cls="mr-1"),
                        "Block" if is_active else "Grant Access",
                        hx_post=f"/users/{user.id}/status",
                        hx_vals=f'{{"status": "{"inactive" if is_active else "active"}"}}',
                        hx_target="#main-content",
                        cls=ButtonT.secondary if is_active else ButtonT.primary,
                    ),
                    Button(
                        UkIcon("trash-2", height=16, width=16),
                        hx_delete=f"/users/{user.id}",
                        hx_target="#main-content",
                        hx_confirm="This will permanently remove this user's access. Their collection history is kept but unlinked. Delete user?",
                        cls=ButtonT.ghost,
                        title="Delete User"
                    ),
                    cls="space-x-2"
                ),
            ),
            cls="cursor-pointer" + (" bg-amber-50/30" if user.status == UserStatus.PENDING else ""),
            _=f"on click toggle .hidden on #{history_id}",
        ),
        Tr(
            Td(
                H5(UkIcon("history", height=16, width=16, cls="mr-2 text-blue-500"), "Recent Access History"),
                Ul(
                    *[
                        Li(Span(format_date(log), cls="font-mono mr-2"), Span(format_time(log), cls=TextPresets.muted_sm),
                           Span(" - Web App access", cls="italic text-gray-400"))
                        for log in user.access_logs
                    ],
                    cls="space-y-2 mt-2"
                ) if user.access_logs else P("No recent access records available.", cls=TextPresets.muted_sm),
                colspan="5",
                cls="pl-16"
            ),
            id=history_id,
            cls="hidden bg-muted",
        ),
    )


def users_content():
    users = store.list_users()
    pending = store.pending_user_count()
    return Container(
        Section(
            DivFullySpaced(
                Div(
                    H1("User Management"),
                    Subtitle("Manage team access, permissions and history."),
                ),
                Button(
                    UkIcon("plus", height=16, width=16, cls="mr-2"),
                    "New User",
                    hx_get="/modal/add-user",
                    hx_target="#modal-container",
                    cls=ButtonT.primary
                ),
            ),
            cls=SectionT.default
        ),
        *(
            [Alert(
                Strong("Attention Required"),
                P(f"There are {pending} new users waiting for permission to access the system. "
                  "Review the list below and grant access if appropriate."),
                cls=AlertT.warning,
                id="pending-warning"
            )]
            if pending else []
        ),
        Card(
            Table(
                Thead(Tr(Th("User"), Th("Role"), Th("Registered"), Th("Status"), Th("Actions", cls="text-right"))),
                Tbody(*[row for user in users for row in user_rows(user)]),
                cls=(TableT.middle, TableT.divider, TableT.hover)
            ),
            cls=CardT.default
        ),
        cls=ContainerT.xl
    )


@rt("/content/users")
def content_users():
    return Title(PAGE_TITLES["users"]), users_content(), create_nav_section("users", swap_oob=True)


@rt("/modal/add-user")
def modal_add_user():
    return Modal(
        P('The user will be created as "Pending".', cls=TextPresets.muted_sm),
        Form(id="add-user-form")(
            LabelInput("Full Name", name="name", required=True, placeholder="e.g. John Smith"),
            LabelInput("Email", name="email", type="email", required=True, placeholder="john@example.com"),
            Div(
                FormLabel("Role"),
                Select(
                    *[Option(role.value, value=role.name, selected=role == UserRole.COLLECTOR) for role in UserRole],
                    name="role",
                ),
            ),
            cls="space-y-4"
        ),
        header=H3("Add New User"),
        footer=Div(
            Button(
                "Save and Await Approval",
                hx_post="/users/add",
                hx_include="#add-user-form",
                hx_target="#main-content",
                cls=ButtonT.primary
            ),
            ModalCloseButton(
                "Cancel",
                hx_get="/modal/close",
                hx_target="#modal-container",
                hx_swap="innerHTML",
                htmx=True,
                cls=ButtonT.secondary
            ),
            cls="flex gap-2 justify-end"
        ),
        open=True
    )


@rt("/users/add", methods=["POST"])
def add_user(name: str = "", email: str = "", role: str = "COLLECTOR"):
    if not name.strip() or not email.strip():
        return Alert("Name and email are required", cls=AlertT.error)
    try:
        store.add_user(name.strip(), email.strip(), UserRole[role])
    except KeyError:
        return Alert(f"Unknown role: {role}", cls=AlertT.error)
    return users_content(), create_nav_section("users", swap_oob=True), Div(id="modal-container", hx_swap_oob="true")


@rt("/users/{user_id}/status", methods=["POST"])
def update_user_status(user_id: str, status: str):
    try:
        store.update_status(user_id, UserStatus(status))
    except (RecordNotFoundError, ValueError) as e:
        return Alert(f"Error: {str(e)}", cls=AlertT.error)
    return users_content(), create_nav_section("users", swap_oob=True)


@rt("/users/{user_id}", methods=["DELETE"])
def delete_user(user_id: str):
    try:
        store.remove_user(user_id)
    except RecordNotFoundError as e:
        return Alert(f"Error: {str(e)}", cls=AlertT.error)
    return users_content(), create_nav_section("users", swap_oob=True)


# Reports

def photo_card(photo, number: int):
    user = store.find_user(photo.user_id)
    return Card(
        Grid(
            Div(
                Img(src=photo.url, alt="Vehicle", cls="absolute inset-0 w-full h-full object-cover"),
                cls="bg-gray-100 relative min-h-[250px]"
            ),
            Div(
                DivFullySpaced(
                    Div(
                        P("Record ID", cls="text-xs font-bold text-gray-400 uppercase"),
                        P(f"#{photo.id.split('-')[0]}", cls="font-mono text-sm"),
                    ),
                    DivLAligned(
                        Label(f"Item {number}", cls=LabelT.secondary),
                        Button(
                            UkIcon("trash-2", height=18, width=18),
                            hx_delete=f"/photos/{photo.id}",
                            hx_target="#main-content",
                            hx_confirm="WARNING: Are you sure you want to delete this inspection record? This action cannot be undone.",
                            cls=(ButtonT.ghost, "no-print"),
                            title="Delete Record"
                        ),
                    ),
                ),
                Grid(
                    Div(
                        P(UkIcon("hash", height=12, width=12), " Plate", cls="text-xs text-yellow-800 font-bold uppercase mb-1"),
                        P(photo.license_plate or "N/A", cls="text-2xl font-bold font-mono tracking-wider"),
                        cls="bg-yellow-50 p-3 rounded border border-yellow-100"
                    ),
                    Div(
                        P(UkIcon("car", height=12, width=12), " Model", cls="text-xs text-blue-800 font-bold uppercase mb-1"),
                        P(photo.vehicle_model or "Not identified", cls="text-lg font-semibold leading-tight"),
                        cls="bg-blue-50 p-3 rounded border border-blue-100"
                    ),
                    cols=2,
                    cls="my-4"
                ),
                P(Strong("Description: "), photo.description or "No description.", cls=TextPresets.muted_sm),
                DivLAligned(*[Label(tag, cls=LabelT.secondary) for tag in photo.tags[:4]], cls="flex-wrap gap-1 mt-2"),
                Grid(
                    Div(
                        P(UkIcon("calendar", height=12, width=12), " Collection Date", cls="text-xs text-gray-400 uppercase font-semibold"),
                        P(format_date(photo.timestamp), cls=TextT.medium),
                        Small(format_time(photo.timestamp), cls=TextPresets.muted_sm),
                    ),
                    Div(
                        P(UkIcon("user", height=12, width=12), " Responsible", cls="text-xs text-gray-400 uppercase font-semibold"),
                        DivLAligned(
                            *([Img(src=user.avatar, alt="", cls="w-6 h-6 rounded-full no-print")] if user and user.avatar else []),
                            P(user.name if user else "System", cls=TextT.medium),
                            cls="space-x-2"
                        ),
                    ),
                    cols=2,
                    cls="border-t pt-4 mt-4"
                ),
                cls="p-6"
            ),
            cols=2,
            cls="gap-0"
        ),
        cls=(CardT.default, "page-break-inside-avoid mb-6 overflow-hidden"),
        id=f"photo-{photo.id}"
    )


def summary_section(summary: str = ""):
    return Div(
        DivFullySpaced(
            DivLAligned(UkIcon("sparkles", height=20, width=20, cls="text-blue-600"), H4("Fleet Overview (AI)")),
            *(
                [Button(
                    "Generate Fleet Summary",
                    hx_post="/reports/summary",
                    hx_target="#ai-summary",
                    hx_swap="outerHTML",
                    hx_indicator="#summary-loading",
                    cls=(ButtonT.ghost, "no-print")
                )]
                if not summary else []
            ),
        ),
        Div(Loading(cls=LoadingT.sm), Span(" Processing fleet data...", cls="ml-2"), id="summary-loading", cls="htmx-indicator flex items-center text-blue-700"),
        P(summary, cls="text-justify text-sm leading-relaxed") if summary
        else P("Summary not generated. Click the button above to analyze.", cls="italic text-sm text-slate-500"),
        id="ai-summary",
        cls="bg-blue-50 border border-blue-100 rounded-lg p-6 no-break-inside"
    )


def reports_content():
    photos = store.list()
    issued = datetime.now()
    return Container(
        Section(
            DivFullySpaced(
                Div(
                    H1("Inspection Reports"),
                    Subtitle("Detailed report with photos, vehicle data and responsible collector."),
                ),
                Button(
                    UkIcon("printer", height=20, width=20, cls="mr-2"),
                    "Export PDF / Print",
                    cls=ButtonT.primary,
                    _="on click call window.print()"
                ),
            ),
            cls=(SectionT.default, "no-print")
        ),
        Card(
            Div(
                DivFullySpaced(
                    Div(
                        H2("Inspection Report", cls="uppercase tracking-wide"),
                        P(f"{config.APP_NAME} Audit System", cls="text-slate-300"),
                    ),
                    Div(
                        P("Issue Date", cls="text-sm text-slate-400 uppercase"),
                        P(issued.strftime('%m/%d/%Y'), cls="font-bold text-xl"),
                        P(issued.strftime('%H:%M:%S'), cls="text-xs text-slate-500"),
                        cls="text-right"
                    ),
                ),
                cls="bg-slate-900 text-white p-8 border-b-4 border-blue-500 print-color-adjust-exact"
            ),
            Div(
                summary_section(),
                H3(UkIcon("file-text", height=20, width=20, cls="mr-2"), "Vehicle Details", cls="border-b pb-2 uppercase mt-8 mb-6"),
                *(
                    [photo_card(photo, len(photos) - index) for index, photo in enumerate(reversed(photos))]
                    if photos
                    else [Div("No collections recorded in the system.", cls="text-center py-12 text-gray-400 italic border-dashed border-2 rounded-lg")]
                ),
                Div(
                    P(f"Report generated automatically by {config.APP_NAME}. Page 1 of 1"),
                    cls="mt-12 border-t pt-4 text-center text-xs text-gray-400 print-only"
                ),
                cls="p-8"
            ),
            cls=CardT.default,
            id="report"
        ),
        cls=ContainerT.xl
    )


@rt("/content/reports")
def content_reports():
    return Title(PAGE_TITLES["reports"]), reports_content(), create_nav_section("reports", swap_oob=True)


@rt("/reports/summary", methods=["POST"])
async def reports_summary():
    summary = await generate_report_summary(store.list(), store.list_users(), analyzer=analyzer)
    return summary_section(summary)


@rt("/photos/{photo_id}", methods=["DELETE"])
def delete_photo(photo_id: str):
    try:
        store.remove(photo_id)
    except RecordNotFoundError as e:
        return Alert(f"Error: {str(e)}", cls=AlertT.error)
    return reports_content()


# Admin panel

def admin_modal(*content):
    return Modal(
        *content,
        header=DivLAligned(UkIcon("shield", height=20, width=20), H3("Admin Panel")),
        footer=ModalCloseButton(
            "Close",
            hx_get="/modal/close",
            hx_target="#modal-container",
            hx_swap="innerHTML",
            htmx=True,
            cls=ButtonT.secondary
        ),
        open=True
    )


def admin_login(error: str = ""):
    return admin_modal(
        Form(hx_post="/admin/unlock", hx_target="#modal-container")(
            LabelInput("Master Password", name="password", type="password", required=True),
            *([P(error, cls=TextT.error)] if error else []),
            Button("Access", type="submit", cls=(ButtonT.primary, "mt-4")),
        )
    )


def admin_panel(message: str = "", error: str = ""):
    return admin_modal(
        *([Alert(message, cls=AlertT.success)] if message else []),
        *([Alert(error, cls=AlertT.error)] if error else []),
        H4("New Administrator"),
        Form(hx_post="/admin/create-admin", hx_target="#modal-container")(
            LabelInput("Name", name="name", required=True),
            LabelInput("Email", name="email", type="email", required=True),
            Button("Register Administrator", type="submit", cls=(ButtonT.primary, "mt-4")),
            cls="space-y-2 mb-8"
        ),
        H4("Danger Zone", cls="text-red-600"),
        P("Deletes all photos and users except the main admin. This cannot be undone.", cls=TextPresets.muted_sm),
        Form(
            hx_post="/admin/clear-data",
            hx_target="#modal-container",
            hx_confirm="WARNING: This will erase all photos and users (except the main admin). This action is irreversible. Continue?",
        )(
            LabelInput("Confirm with the master password", name="confirmation", type="password", required=True),
            Button("Delete All Data", type="submit", cls=(ButtonT.destructive, "mt-4")),
        ),
    )


@rt("/modal/admin")
def modal_admin(session):
    if session.get("admin_unlocked"):
        return admin_panel()
    return admin_login()


@rt("/admin/unlock", methods=["POST"])
def admin_unlock(session, password: str = ""):
    if not check_master_password(password, config.MASTER_PASSWORD):
        logger.warning("Admin panel: wrong master password")
        return admin_login("Incorrect master password")
    session["admin_unlocked"] = True
    return admin_panel()


@rt("/admin/create-admin", methods=["POST"])
def admin_create_admin(session, name: str = "", email: str = ""):
    if not session.get("admin_unlocked"):
        return admin_login()
    if not name.strip() or not email.strip():
        return admin_panel(error="Name and email are required")
    store.add_admin(name.strip(), email.strip())
    return admin_panel(message="Administrator registered successfully!"), create_nav_section("dashboard", swap_oob=True)


@rt("/admin/clear-data", methods=["POST"])
def admin_clear_data(session, confirmation: str = ""):
    if not session.get("admin_unlocked"):
        return admin_login()
    if not check_master_password(confirmation, config.MASTER_PASSWORD):
        return admin_panel(error="Incorrect confirmation password.")
    store.clear()
    session.pop("admin_unlocked", None)
    return (
        Alert("All data was deleted.", cls=AlertT.success),
        Div(dashboard_content(), id="main-content", hx_swap_oob="true", cls="p-4 overflow-y-auto flex-1 md:ml-0"),
        create_nav_section("dashboard", swap_oob=True),
    )


serve()
