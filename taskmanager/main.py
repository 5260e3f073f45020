from __future__ import annotations

from datetime import timedelta
import logging
import time
from typing import Optional

from fastapi import Cookie, Depends, FastAPI, Header, Request, Response
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from taskmanager.config import Settings, settings as default_settings
from taskmanager.db import Database, User
from taskmanager.logging_setup import setup_logging
from taskmanager.models import LoginRequest, SignupRequest, TaskCreate, TaskOut, TaskStatusPatch, TaskUpdate, UserOut
from taskmanager.scheduler import create_scheduler, register_sweep
from taskmanager.services.auth_service import AuthService
from taskmanager.services.due_task_sweep import DueTaskSweep
from taskmanager.services.errors import ServiceError
from taskmanager.services.mailer import Mailer
from taskmanager.services.retry import RetryingSender
from taskmanager.services.task_service import TaskService
from taskmanager.services.task_store import TaskStore
from taskmanager.services.token_service import TokenService
from taskmanager.services.user_store import UserStore

logger = logging.getLogger(__name__)

REFRESH_COOKIE = "refreshToken"


def build_mailer(cfg: Settings) -> Mailer:
    return Mailer(
        cfg.smtp_host,
        cfg.smtp_port,
        cfg.smtp_user,
        cfg.smtp_password,
        from_name=cfg.email_from_name,
        start_tls=cfg.smtp_starttls,
        timeout_sec=cfg.email_timeout_sec,
    )


def build_sweep(cfg: Settings, db: Database, task_store: TaskStore, mailer: Mailer) -> DueTaskSweep:
    sender = RetryingSender(mailer, max_retries=cfg.cron_max_retries, base_delay_sec=cfg.cron_retry_base_delay_sec)
    return DueTaskSweep(
        db,
        task_store,
        sender,
        delete_after_notify=cfg.delete_after_email,
        lookback=timedelta(minutes=max(1, cfg.due_lookback_minutes)),
    )


def _task_json(task) -> dict:
    return TaskOut.model_validate(task).model_dump(mode="json")


def create_app(
    cfg: Settings | None = None,
    db: Database | None = None,
    mailer: Mailer | None = None,
) -> FastAPI:
    cfg = cfg or default_settings
    setup_logging(cfg.effective_log_level, cfg.log_file, echo_sql=cfg.database_echo)

    db = db or Database(cfg.database_url, echo=cfg.database_echo)
    mailer = mailer or build_mailer(cfg)
    users = UserStore(db)
    task_store = TaskStore(db)
    tokens = TokenService(
        cfg.access_token_secret,
        cfg.refresh_token_secret,
        cfg.access_token_ttl_minutes,
        cfg.refresh_token_ttl_days,
    )
    auth_service = AuthService(users, tokens)
    task_service = TaskService(task_store)
    sweep = build_sweep(cfg, db, task_store, mailer)
    scheduler = create_scheduler(cfg.timezone)
    started_at = time.monotonic()

    app = FastAPI(title="Task Manager API", version="0.1.0")
    app.state.settings = cfg
    app.state.db = db
    app.state.sweep = sweep
    app.state.scheduler = scheduler
    app.state.auth_service = auth_service

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
        body = {"status": False, "msg": exc.msg}
        if exc.code:
            body["code"] = exc.code
        return JSONResponse(body, status_code=exc.status_code)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            body = {"status": False, "msg": "API endpoint not found", "path": request.url.path}
        else:
            body = {"status": False, "msg": str(exc.detail)}
        return JSONResponse(body, status_code=exc.status_code, headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse({"status": False, "msg": "Internal Server Error"}, status_code=500)

    @app.on_event("startup")
    async def startup_event() -> None:
        await db.create_all()
        if not mailer.is_configured():
            logger.warning("Email config missing. Due-task emails will fail until SMTP is configured.")
        if cfg.scheduler_enabled:
            register_sweep(scheduler, sweep, cfg.cron_schedule, cfg.timezone, cfg.run_cron_on_startup)
            scheduler.start()

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        if scheduler.running:
            scheduler.shutdown(wait=False)
        await db.dispose()

    async def current_user(authorization: Optional[str] = Header(default=None)) -> User:
        return await auth_service.authenticate(authorization)

    @app.get("/api/health")
    async def health() -> dict:
        return {
            "status": "ok",
            "uptime": round(time.monotonic() - started_at, 3),
            "database": await db.ping(),
        }

    @app.post("/api/auth/signup", status_code=201)
    async def signup(body: SignupRequest) -> dict:
        await auth_service.signup(body.name, body.email, body.password)
        return {"status": True, "msg": "Account created successfully"}

    @app.post("/api/auth/login")
    async def login(body: LoginRequest, response: Response) -> dict:
        result = await auth_service.login(body.email, body.password)
        response.set_cookie(
            REFRESH_COOKIE,
            result.refresh_token,
            max_age=cfg.refresh_cookie_max_age_sec,
            httponly=True,
            secure=cfg.is_production,
            samesite="strict" if cfg.is_production else "lax",
        )
        return {
            "status": True,
            "accessToken": result.access_token,
            "user": UserOut.model_validate(result.user).model_dump(mode="json"),
            "msg": "Login successful",
        }

    @app.post("/api/auth/refresh")
    async def refresh(refresh_token: Optional[str] = Cookie(default=None, alias=REFRESH_COOKIE)) -> dict:
        return {"accessToken": auth_service.refresh(refresh_token)}

    @app.post("/api/auth/signout")
    async def signout(response: Response) -> dict:
        response.delete_cookie(REFRESH_COOKIE)
        return {"status": True, "msg": "User signed out successfully"}

    @app.get("/api/profile")
    async def get_profile(user: User = Depends(current_user)) -> dict:
        profile = await auth_service.profile(user.id)
        return {
            "status": True,
            "user": UserOut.model_validate(profile).model_dump(mode="json"),
            "msg": "Profile fetched successfully",
        }

    @app.get("/api/tasks")
    async def get_tasks(user: User = Depends(current_user)) -> dict:
        tasks = await task_service.list_tasks(user.id)
        msg = "Tasks found successfully." if tasks else "No tasks found."
        return {"status": True, "tasks": [_task_json(t) for t in tasks], "msg": msg}

    @app.post("/api/tasks", status_code=201)
    async def post_task(body: TaskCreate, user: User = Depends(current_user)) -> dict:
        task = await task_service.create_task(user.id, body.description, body.due_date)
        return {"status": True, "task": _task_json(task), "msg": "Task created successfully."}

    @app.get("/api/tasks/{task_id}")
    async def get_task(task_id: str, user: User = Depends(current_user)) -> dict:
        task = await task_service.get_task(user.id, task_id)
        return {"status": True, "task": _task_json(task), "msg": "Task found successfully."}

    @app.put("/api/tasks/{task_id}")
    async def put_task(task_id: str, body: TaskUpdate, user: User = Depends(current_user)) -> dict:
        changes = body.model_dump(include=body.model_fields_set)
        task = await task_service.update_task(user.id, task_id, changes)
        return {"status": True, "task": _task_json(task), "msg": "Task updated successfully."}

    @app.patch("/api/tasks/{task_id}/status")
    async def patch_task_status(task_id: str, body: TaskStatusPatch, user: User = Depends(current_user)) -> dict:
        task = await task_service.set_status(user.id, task_id, body.status)
        return {"status": True, "task": _task_json(task), "msg": "Status updated"}

    @app.delete("/api/tasks/{task_id}")
    async def delete_task(task_id: str, user: User = Depends(current_user)) -> dict:
        was_past_due = await task_service.delete_task(user.id, task_id)
        msg = "Due Task deleted successfully." if was_past_due else "Task deleted successfully."
        return {"status": True, "msg": msg}

    @app.post("/api/run-now")
    async def run_now(user: User = Depends(current_user)) -> dict:
        logger.info("Manual due-task sweep requested by %s", user.id)
        report = await sweep.run()
        if report is None:
            return {"ok": True, "skipped": True, "message": "A sweep is already running."}
        return {"ok": True, "skipped": False, "report": report.model_dump(mode="json"), "emails_sent": report.emails_sent}

    return app


app = create_app()
