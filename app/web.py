from __future__ import annotations

from datetime import date, datetime, timezone
from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates


templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))


def format_as_date(moment: date) -> str:
    return f"{moment.year}/{moment.month:02d}/{moment.day:02d}"


templates.env.filters["format_as_date"] = format_as_date

router = APIRouter(include_in_schema=False)


@router.get("/", name="index", response_class=HTMLResponse)
async def index(request: Request) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "index.html",
        {"now": datetime.now(timezone.utc)},
    )
