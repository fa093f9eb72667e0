from pathlib import Path

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from app.dependencies import Session, get_session
from dinner_planner.core.state import Phase

router = APIRouter(tags=["planner"])
templates = Jinja2Templates(directory=Path(__file__).parent.parent / "templates")

TABS = ("menu", "shopping", "recipes")


def _is_htmx(request: Request) -> bool:
    return request.headers.get("HX-Request") == "true"


def _context(session: Session, tab: str = "menu") -> dict:
    state = session.planner.state
    return {
        "state": state,
        "phase": state.phase.value,
        "tab": tab if tab in TABS else "menu",
        "tabs": TABS,
    }


def _render(request: Request, session: Session, tab: str = "menu"):
    """Full page for normal requests, the #app fragment for htmx swaps."""
    template = "partials/app.html" if _is_htmx(request) else "index.html"
    resp = templates.TemplateResponse(request, template, _context(session, tab))
    return session.attach(resp)


def _after_action(request: Request, session: Session):
    if _is_htmx(request):
        return _render(request, session)
    return session.attach(RedirectResponse(url="/", status_code=303))


# ── Pages ──────────────────────────────────────────────────────────────────────

@router.get("/", response_class=HTMLResponse)
def index(request: Request, session: Session = Depends(get_session)):
    return _render(request, session)


@router.get("/dashboard", response_class=HTMLResponse)
def dashboard(request: Request, tab: str = "menu", session: Session = Depends(get_session)):
    if session.planner.state.phase != Phase.DASHBOARD:
        return _after_action(request, session)
    return _render(request, session, tab)


@router.get("/status", response_class=HTMLResponse)
def status(request: Request, session: Session = Depends(get_session)):
    """Current loading message, polled by the loading overlay."""
    resp = templates.TemplateResponse(request, "partials/loading_message.html", _context(session))
    return session.attach(resp)


# ── Actions ────────────────────────────────────────────────────────────────────

@router.post("/start", response_class=HTMLResponse)
async def start(request: Request, session: Session = Depends(get_session)):
    await session.planner.start()
    return _after_action(request, session)


@router.post("/refresh", response_class=HTMLResponse)
async def refresh(request: Request, session: Session = Depends(get_session)):
    await session.planner.refresh()
    return _after_action(request, session)


@router.post("/dishes/{dish_id:path}/toggle", response_class=HTMLResponse)
async def toggle_dish(request: Request, dish_id: str, session: Session = Depends(get_session)):
    session.planner.toggle(dish_id)
    return _after_action(request, session)


@router.post("/plan", response_class=HTMLResponse)
async def generate_plan(request: Request, session: Session = Depends(get_session)):
    await session.planner.confirm()
    return _after_action(request, session)


@router.post("/restart", response_class=HTMLResponse)
async def restart(request: Request, session: Session = Depends(get_session)):
    session.planner.restart()
    return _after_action(request, session)
