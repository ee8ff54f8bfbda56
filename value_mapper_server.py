#!/usr/bin/env python3
# value_mapper_server.py - FastAPI server implementing the Grafana SimpleJSON /search contract
import argparse
import html
import logging
import secrets
from contextlib import asynccontextmanager
from typing import Any, List, Mapping, Optional

from fastapi import Body, Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from pydantic import BaseModel, ConfigDict
from starlette.exceptions import HTTPException as StarletteHTTPException

from dataset_store import Dataset, DatasetError, load_datasets
from query_resolver import ErrorKind, QueryError, resolve
from server_settings import Settings, get_settings

logger = logging.getLogger(__name__)

TITLE = "Grafana SimpleJSON Value Mapper"

ACCESS_DENIED = QueryError(ErrorKind.ACCESS_DENIED, "Access Denied")

security = HTTPBasic(auto_error=False)


# Pydantic models
class SearchRequest(BaseModel):
    # Grafana sends extra fields (type, refId, ...) next to target
    model_config = ConfigDict(extra="ignore")

    target: Any = None


class SearchResult(BaseModel):
    text: Any
    value: Any


def get_datasets(request: Request) -> Mapping[str, Dataset]:
    """Return the loaded datasets, loading them on first use"""
    state = request.app.state
    if state.datasets is None:
        try:
            state.datasets = load_datasets(state.settings.data_path)
        except DatasetError as e:
            logger.error(f"Error loading datasets: {e}")
            raise HTTPException(status_code=500, detail=str(e))
    return state.datasets


async def require_access(request: Request):
    """HTTP Basic gate; a no-op unless both auth settings are configured"""
    settings: Settings = request.app.state.settings
    if not settings.auth_enabled:
        return
    # A malformed Authorization header is just another failed login
    try:
        credentials: Optional[HTTPBasicCredentials] = await security(request)
    except HTTPException:
        credentials = None
    if credentials is None or not (
        secrets.compare_digest(credentials.username.encode(), settings.http_auth_username.encode())
        and secrets.compare_digest(credentials.password.encode(), settings.http_auth_password.encode())
    ):
        logger.warning("Access denied for %s", request.client.host if request.client else "unknown client")
        raise HTTPException(status_code=ACCESS_DENIED.status_code, detail=ACCESS_DENIED.message)


def render_index(datasets: Mapping[str, Dataset]) -> str:
    rows = "\n".join(
        f"<tr><td>{html.escape(name)}</td><td>{ds.shape}</td><td>{len(ds)}</td></tr>"
        for name, ds in datasets.items()
    )
    example = html.escape('{"data": "<name>", "contains": "<substring>", "id": "(key1|key2)"}')
    return f"""<!DOCTYPE html>
<html>
<head><title>{TITLE}</title></head>
<body>
  <h1>{TITLE}</h1>
  <p>Point a Grafana SimpleJSON datasource at this server and use a JSON query
  in template variables, for example:</p>
  <pre>{example}</pre>
  <h2>Datasets</h2>
  <table>
    <tr><th>Name</th><th>Shape</th><th>Entries</th></tr>
{rows}
  </table>
</body>
</html>
"""


def create_app(settings: Optional[Settings] = None, datasets: Optional[Mapping[str, Dataset]] = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Load data on startup
        if app.state.datasets is None:
            app.state.datasets = load_datasets(settings.data_path)
        logger.info(f"Serving {len(app.state.datasets)} datasets, auth {'enabled' if settings.auth_enabled else 'disabled'}")
        yield

    app = FastAPI(title=TITLE, lifespan=lifespan)
    app.state.settings = settings
    app.state.datasets = datasets

    # Grafana in browser (direct) access mode calls the datasource cross-origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        messages = "; ".join(str(err.get("msg", err)) for err in exc.errors())
        return JSONResponse({"error": f"invalid request body: {messages}"}, status_code=400)

    @app.get("/", response_class=HTMLResponse)
    def index(datasets: Mapping[str, Dataset] = Depends(get_datasets)):
        return HTMLResponse(render_index(datasets))

    @app.get("/health")
    def health(datasets: Mapping[str, Dataset] = Depends(get_datasets)):
        """Health check endpoint"""
        return {"status": "ok", "datasets": len(datasets)}

    @app.post("/search", response_model=List[SearchResult], dependencies=[Depends(require_access)])
    def search(
        payload: Optional[SearchRequest] = Body(default=None),
        datasets: Mapping[str, Dataset] = Depends(get_datasets),
    ):
        """Grafana SimpleJSON search: template variable values for a JSON target"""
        target = payload.target if payload is not None else None
        results, error = resolve(target, datasets)
        if error is not None:
            return JSONResponse(error.to_body(), status_code=error.status_code)
        return results

    return app


app = create_app()


def main(argv=None):
    settings = get_settings()
    ap = argparse.ArgumentParser(description=TITLE)
    ap.add_argument("--host", default=settings.host, help="Interface to bind")
    ap.add_argument("--port", type=int, default=settings.port, help="Port to listen on")
    ap.add_argument("--data", default=settings.data_path, help="Path to the datasets JSON file")
    ap.add_argument("--log-level", default=settings.log_level, help="DEBUG, INFO, WARNING, ERROR")
    args = ap.parse_args(argv)

    logging.basicConfig(level=args.log_level.upper(), format='%(asctime)s - %(levelname)s - %(message)s')
    settings = settings.model_copy(update={
        "host": args.host,
        "port": args.port,
        "data_path": args.data,
        "log_level": args.log_level,
    })

    try:
        datasets = load_datasets(settings.data_path)
    except DatasetError as e:
        logger.error(f"❌ {e}")
        raise SystemExit(1)

    import uvicorn
    uvicorn.run(create_app(settings, datasets), host=settings.host, port=settings.port, log_level=args.log_level.lower())


if __name__ == "__main__":
    main()
