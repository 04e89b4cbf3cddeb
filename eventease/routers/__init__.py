"""
FastAPI routers grouped by domain.

Each module exposes an APIRouter that the application factory (app.py)
includes.  Routers stay thin: they call the store/backup services and let the
app-level handler turn service errors into JSON responses.
"""
