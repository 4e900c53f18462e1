"""
OpenClaw Manager - web console for an openclaw installation.

Serves the frontend bundle and a small JSON API:
    /api/health          liveness
    /api/auth/*          one-time admin setup, login/logout, session check
    /api/invoke          {"cmd": ..., "args": {...}} -> named command

Every API response is {"success": true, "data": ...} or
{"success": false, "error": "..."}.
"""

from pathlib import Path
from typing import Any, Optional

from fastapi import Cookie, FastAPI, HTTPException, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from audit import audit_log, configure_audit_log, read_audit_log
from config_errors import ConfigError
from config_store import ConfigStore
from dispatch import CommandContext, dispatch_command
from settings import Settings
from web_auth import SESSION_COOKIE, AuthManager

UNAUTHORIZED = "Not logged in or session expired"


class SetupRequest(BaseModel):
    username: str
    password: str


class LoginRequest(BaseModel):
    username: str
    password: str


class InvokeRequest(BaseModel):
    cmd: str
    args: Any = Field(default_factory=dict)


def success(data: Any) -> dict:
    return {"success": True, "data": data}


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"success": False, "error": message}, status_code=status_code)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_audit_log(settings.audit_log)

    app = FastAPI(title="OpenClaw Manager", version="1.0.0")
    store = ConfigStore(settings)
    ctx = CommandContext(settings, store)
    auth = AuthManager(settings.auth_path, settings.session_ttl)
    app.state.settings = settings
    app.state.auth = auth
    app.state.store = store

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        return error_response(400, f"Invalid request body: {exc.errors()}")

    @app.on_event("startup")
    async def startup():
        audit_log("manager_started", {
            "config_path": str(settings.config_path),
            "host": settings.host,
            "port": settings.port,
        })

    def require_session(session: Optional[str]) -> str:
        username = auth.session_user(session)
        if username is None:
            raise HTTPException(status_code=401, detail=UNAUTHORIZED)
        return username

    def set_session_cookie(response: Response, value: str, max_age: int):
        response.set_cookie(
            key=SESSION_COOKIE,
            value=value,
            httponly=True,
            samesite="lax",
            path="/",
            max_age=max_age,
            secure=settings.cookie_secure,
        )

    # ============================================================
    # Health
    # ============================================================

    @app.get("/api")
    @app.get("/api/health")
    async def health():
        return success({"status": "ok"})

    # ============================================================
    # Authentication
    # ============================================================

    @app.get("/api/auth/status")
    def auth_status(session: Optional[str] = Cookie(None, alias=SESSION_COOKIE)):
        username = auth.session_user(session)
        return success({
            "needs_setup": auth.needs_setup(),
            "authenticated": username is not None,
            "username": username,
        })

    @app.post("/api/auth/setup")
    def auth_setup(body: SetupRequest):
        if not body.username.strip():
            raise HTTPException(status_code=400, detail="Username must not be empty")
        if len(body.password) < 8:
            raise HTTPException(status_code=400, detail="Password must be at least 8 characters")
        if not auth.needs_setup():
            raise HTTPException(status_code=409, detail="Admin account already initialized")

        try:
            username = auth.setup_admin(body.username, body.password)
        except ConfigError as e:
            raise HTTPException(status_code=500, detail=str(e))

        audit_log("admin_setup", {"username": username})
        return success({"message": "Admin account initialized"})

    @app.post("/api/auth/login")
    def auth_login(body: LoginRequest, response: Response):
        if auth.needs_setup():
            raise HTTPException(status_code=412, detail="Initialize the admin account first")
        if not auth.authenticate(body.username, body.password):
            audit_log("login_failed", {"username": body.username})
            raise HTTPException(status_code=401, detail="Invalid username or password")

        username = body.username.strip()
        token = auth.create_session(username)
        set_session_cookie(response, token, settings.session_ttl)
        audit_log("login", {"username": username, "session_prefix": token[:8]})
        return success({"username": username})

    @app.post("/api/auth/logout")
    def auth_logout(response: Response, session: Optional[str] = Cookie(None, alias=SESSION_COOKIE)):
        username = auth.session_user(session)
        auth.drop_session(session)
        set_session_cookie(response, "deleted", 0)
        if username:
            audit_log("logout", {"username": username})
        return success({"message": "Logged out"})

    @app.get("/api/auth/me")
    def auth_me(session: Optional[str] = Cookie(None, alias=SESSION_COOKIE)):
        return success({"username": require_session(session)})

    # ============================================================
    # Commands
    # ============================================================

    @app.post("/api/invoke")
    def invoke(body: InvokeRequest, session: Optional[str] = Cookie(None, alias=SESSION_COOKIE)):
        username = require_session(session)
        cmd = body.cmd.strip()
        if not cmd:
            raise HTTPException(status_code=400, detail="cmd must not be empty")

        try:
            return success(dispatch_command(ctx, cmd, body.args))
        except ConfigError as e:
            return error_response(400, str(e))
        except Exception as e:
            audit_log("command_failed", {"cmd": cmd, "username": username, "error": str(e)})
            return error_response(500, f"Command {cmd} failed: {e}")

    @app.get("/api/audit")
    def audit(limit: int = 50, session: Optional[str] = Cookie(None, alias=SESSION_COOKIE)):
        require_session(session)
        return success(read_audit_log(limit))

    # ============================================================
    # Frontend
    # ============================================================

    @app.get("/{path:path}")
    def static_files(path: str):
        if path == "api" or path.startswith("api/"):
            raise HTTPException(status_code=404, detail="Not Found")
        return serve_static_file(settings.static_dir, path)

    return app


def serve_static_file(static_dir: Path, path: str):
    """Serve a file from the frontend bundle, falling back to index.html for client routes."""
    relative = path.lstrip("/") or "index.html"
    if ".." in relative:
        raise HTTPException(status_code=403, detail="Forbidden")

    target = static_dir / relative
    if target.is_dir():
        target = target / "index.html"
    if target.is_file():
        return FileResponse(target)

    index = static_dir / "index.html"
    if index.is_file():
        return FileResponse(index)
    raise HTTPException(status_code=404, detail="Not Found")


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=app.state.settings.host, port=app.state.settings.port)
