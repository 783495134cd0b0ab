from fastapi import BackgroundTasks, FastAPI, Request
from fastapi.responses import HTMLResponse, PlainTextResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from .demo import DemoRunner
from .fetcher import Fetcher


class StatsResponse(BaseModel):
    apiCalls: int
    fetches: int
    cacheSize: int
    dataSize: int
    errors: int
    debug: bool
    timeout: int


INDEX_TEMPLATE = """<!DOCTYPE html>
<html>
    <head>
        <title>Star Wars API Demo</title>
        <style>
            body {{ font-family: Arial, sans-serif; max-width: 800px; margin: 0 auto; padding: 20px; }}
            h1 {{ color: #FFE81F; background-color: #000; padding: 10px; }}
            button {{ background-color: #FFE81F; border: none; padding: 10px 20px; cursor: pointer; }}
            .footer {{ margin-top: 50px; font-size: 12px; color: #666; }}
            pre {{ background: #f4f4f4; padding: 10px; border-radius: 5px; }}
        </style>
    </head>
    <body>
        <h1>Star Wars API Demo</h1>
        <p>This page fetches data from the Star Wars API.</p>
        <p>Results are printed on the server console.</p>
        <button onclick="fetchData()">Fetch data</button>
        <div id="results"></div>
        <script>
            function fetchData() {{
                document.getElementById('results').innerHTML = '<p>Loading data...</p>';
                fetch('/api')
                    .then(res => res.text())
                    .then(() => {{
                        document.getElementById('results').innerHTML = '<p>Data requested! Check the server console.</p>';
                    }})
                    .catch(err => {{
                        document.getElementById('results').innerHTML = '<p>Error: ' + err.message + '</p>';
                    }});
            }}
        </script>
        <div class="footer">
            <p>API runs: {runs} | Cache entries: {cache_size} | Errors: {errors}</p>
            <pre>Debug: {debug} | Timeout: {timeout}ms</pre>
        </div>
    </body>
</html>
"""


def render_index(runner: DemoRunner) -> str:
    fetcher = runner.fetcher
    return INDEX_TEMPLATE.format(
        runs=runner.runs,
        cache_size=fetcher.cache_size,
        errors=fetcher.error_count,
        debug="ON" if fetcher.config.debug else "OFF",
        timeout=fetcher.config.timeout_ms,
    )


def create_app(fetcher: Fetcher, runner: DemoRunner | None = None) -> FastAPI:
    runner = runner or DemoRunner(fetcher)
    app = FastAPI(title="Star Wars API Demo", version="1.0.0")
    app.state.fetcher = fetcher
    app.state.runner = runner

    @app.exception_handler(StarletteHTTPException)
    async def not_found(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return PlainTextResponse("Page not found", status_code=404)
        return PlainTextResponse(str(exc.detail), status_code=exc.status_code)

    @app.get("/", response_class=HTMLResponse)
    @app.get("/index.html", response_class=HTMLResponse)
    def index():
        return HTMLResponse(render_index(runner))

    @app.get("/api", response_class=PlainTextResponse)
    def run_demo(background_tasks: BackgroundTasks):
        """Kick off a demo run; output goes to the server console."""
        background_tasks.add_task(runner.run)
        return PlainTextResponse("Check the server console for results")

    @app.get("/stats", response_model=StatsResponse)
    def stats():
        return StatsResponse(apiCalls=runner.runs, **fetcher.stats())

    return app
