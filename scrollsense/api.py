"""
scrollsense/api.py
─────────────────────────────────────────────────────────────────────────────
scrollsense — query API over a session database

TWO USAGE MODES:
  1. Importable module:
         from scrollsense.api import SessionAPI
         api = SessionAPI(db_path=Path("scrollsense.db"))
         sessions = api.get_sessions(category="social")

  2. FastAPI HTTP server (local dashboards via fetch()):
         python -m scrollsense.api                # default: port 8765
         scrollsense-api --port 9000
         uvicorn scrollsense.api:app --port 8765

ENDPOINTS:
  GET  /sessions   — stored sessions, oldest first, optional package/category filter
  GET  /totals     — time per (package, category) clipped to a window
  GET  /feedback   — learned user corrections
  POST /feedback   — record a user correction for a package
  GET  /meta       — last replay run metadata
  GET  /health     — server status, db existence, adult veto availability

CORS: localhost-only (127.0.0.1 / ::1). Not exposed to network by default.
Screen titles are returned as stored; no screen text leaves the device.
"""

from __future__ import annotations

import argparse
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from scrollsense import __version__
from scrollsense.classifier.content_classifier import record_user_feedback
from scrollsense.config import keyword_paths, load_config, veto_path
from scrollsense.detectors.keyword_store import KeywordStore, load_keyword_store
from scrollsense.errors import PersistenceFailure
from scrollsense.models.record import Session
from scrollsense.stores.sqlite_store import SqliteFeedbackStore, SqliteSessionStore

logger = logging.getLogger(__name__)

MAX_SESSION_LIMIT = 500


# ═══════════════════════════════════════════════════════════════════════════
# IMPORTABLE CLASS
# ═══════════════════════════════════════════════════════════════════════════

class SessionAPI:
    """
    Pure-Python wrapper around scrollsense.db. No HTTP layer required.

    Usage:
        api = SessionAPI(db_path=Path("scrollsense.db"))
        api.get_totals(from_ms=0, to_ms=now_ms)
        api.record_feedback("com.android.chrome", "news")
    """

    def __init__(self, db_path: Path = Path("scrollsense.db"), keywords: Optional[KeywordStore] = None):
        self.db_path  = Path(db_path)
        self.keywords = keywords

    # ── INTERNAL ──────────────────────────────────────────────────────────

    def _db_exists(self) -> bool:
        return self.db_path.exists()

    def _sessions(self) -> SqliteSessionStore:
        return SqliteSessionStore(self.db_path)

    def _feedback(self) -> SqliteFeedbackStore:
        return SqliteFeedbackStore(self.db_path)

    @staticmethod
    def _session_to_dict(session: Session) -> Dict[str, Any]:
        d = asdict(session)
        d["duration_ms"] = session.duration_ms
        return d

    @property
    def veto_available(self) -> Optional[bool]:
        return self.keywords.veto_available if self.keywords is not None else None

    # ── QUERIES ───────────────────────────────────────────────────────────

    def get_sessions(
        self,
        package_id: Optional[str] = None,
        category:   Optional[str] = None,
        limit:      int = 100,
        offset:     int = 0,
    ) -> List[Dict[str, Any]]:
        if not self._db_exists():
            return []
        limit = min(int(limit), MAX_SESSION_LIMIT)
        rows = self._sessions().list_sessions(package_id=package_id, category=category,
                                              limit=limit, offset=offset)
        return [self._session_to_dict(s) for s in rows]

    def get_totals(self, from_ms: int, to_ms: int) -> List[Dict[str, Any]]:
        """Time per (package, category) inside [from_ms, to_ms]."""
        if not self._db_exists():
            return []
        if to_ms < from_ms:
            raise ValueError("to_ms must not be earlier than from_ms")
        return self._sessions().totals_by_app_and_category(from_ms, to_ms)

    def get_feedback(self) -> List[Dict[str, Any]]:
        if not self._db_exists():
            return []
        return [asdict(r) for r in self._feedback().list_feedback()]

    def record_feedback(self, package_id: str, category: str) -> Optional[Dict[str, Any]]:
        """Store a user correction. Returns the stored record, or None if it was rejected."""
        record = record_user_feedback(self._feedback(), package_id, category)
        return asdict(record) if record else None

    def get_meta(self) -> Optional[Dict[str, Any]]:
        if not self._db_exists():
            return None
        return self._sessions().latest_meta()


# ═══════════════════════════════════════════════════════════════════════════
# FASTAPI HTTP APP
# ═══════════════════════════════════════════════════════════════════════════

class FeedbackRequest(BaseModel):
    package_id: str = Field(..., min_length=1)
    category:   str = Field(..., min_length=1)


def _build_app(db_path: Path = Path("scrollsense.db"), keywords: Optional[KeywordStore] = None) -> FastAPI:
    """Build the FastAPI application around one database."""
    _api = SessionAPI(db_path=db_path, keywords=keywords)

    _app = FastAPI(
        title       = "scrollsense API",
        description = "Local usage-session timeline and category totals",
        version     = __version__,
        docs_url    = "/docs",
        redoc_url   = None,
    )

    _app.add_middleware(
        CORSMiddleware,
        allow_origins     = [
            "http://localhost",
            "http://localhost:8765",
            "http://127.0.0.1",
            "http://127.0.0.1:8765",
            "null",   # file:// origin
        ],
        allow_methods     = ["GET", "POST", "OPTIONS"],
        allow_headers     = ["Content-Type"],
        allow_credentials = False,
    )

    # ── ENDPOINTS ───────────────────────────────────────────────────────

    @_app.get("/sessions", summary="List stored sessions")
    def get_sessions(
        package_id: Optional[str] = Query(None, description="Filter by package id"),
        category:   Optional[str] = Query(None, description="Filter by category"),
        limit:      int           = Query(100, ge=1, le=MAX_SESSION_LIMIT),
        offset:     int           = Query(0,   ge=0),
    ):
        try:
            data = _api.get_sessions(package_id=package_id, category=category,
                                     limit=limit, offset=offset)
        except PersistenceFailure as exc:
            raise HTTPException(status_code=500, detail=str(exc))
        return {"count": len(data), "sessions": data}

    @_app.get("/totals", summary="Time per app and category")
    def get_totals(
        from_ms: int = Query(..., ge=0, description="Window start, epoch ms"),
        to_ms:   int = Query(..., ge=0, description="Window end, epoch ms"),
    ):
        try:
            data = _api.get_totals(from_ms, to_ms)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        except PersistenceFailure as exc:
            raise HTTPException(status_code=500, detail=str(exc))
        return {"from_ms": from_ms, "to_ms": to_ms, "totals": data}

    @_app.get("/feedback", summary="List learned corrections")
    def get_feedback():
        try:
            data = _api.get_feedback()
        except PersistenceFailure as exc:
            raise HTTPException(status_code=500, detail=str(exc))
        return {"count": len(data), "feedback": data}

    @_app.post("/feedback", summary="Record a category correction")
    def post_feedback(req: FeedbackRequest):
        try:
            record = _api.record_feedback(req.package_id, req.category)
        except PersistenceFailure as exc:
            raise HTTPException(status_code=500, detail=str(exc))
        if record is None:
            raise HTTPException(status_code=400, detail="Feedback not recorded")
        return {"status": "ok", "feedback": record}

    @_app.get("/meta", summary="Last run metadata")
    def get_meta():
        try:
            data = _api.get_meta()
        except PersistenceFailure as exc:
            raise HTTPException(status_code=500, detail=str(exc))
        if data is None:
            raise HTTPException(status_code=404, detail="No run metadata found — replay events first.")
        return data

    @_app.get("/health", summary="Health check")
    def health():
        return {
            "status":         "ok",
            "db_exists":      _api.db_path.exists(),
            "db_path":        str(_api.db_path),
            "veto_available": _api.veto_available,
            "version":        __version__,
        }

    return _app


def _load_keywords(config: Dict[str, Any]) -> KeywordStore:
    return load_keyword_store(
        keyword_paths = keyword_paths(config),
        veto_path     = veto_path(config),
        languages     = config.get("languages") or None,
    )


# Module-level app instance, used by uvicorn scrollsense.api:app
_config = load_config()
app = _build_app(Path(_config["db_path"]), keywords=_load_keywords(_config))


# ═══════════════════════════════════════════════════════════════════════════
# CLI ENTRYPOINT: python -m scrollsense.api / scrollsense-api
# ═══════════════════════════════════════════════════════════════════════════

def main():
    config = load_config()
    parser = argparse.ArgumentParser(
        prog        = "scrollsense-api",
        description = "scrollsense API Server — serves the session timeline on localhost",
    )
    parser.add_argument("--port", type=int, default=int(config["api_port"]),
                        help="Port to bind (default: 8765)")
    parser.add_argument("--db",   type=str, default=config["db_path"],
                        help="Path to scrollsense.db (default: scrollsense.db)")
    parser.add_argument("--host", type=str, default=config["api_host"],
                        help="Host to bind — DO NOT change to 0.0.0.0 on shared networks")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level   = logging.DEBUG if args.verbose else logging.INFO,
        format  = '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt = '%H:%M:%S',
    )

    server_app = _build_app(db_path=Path(args.db), keywords=_load_keywords(config))

    print(f"""
+--------------------------------------------------+
|   scrollsense API Server v{__version__:<23}|
+--------------------------------------------------+
|  Local:    http://{args.host}:{args.port}
|  DB:       {args.db}
|  Docs:     http://{args.host}:{args.port}/docs
|  Health:   http://{args.host}:{args.port}/health
+--------------------------------------------------+
""")

    uvicorn.run(
        server_app,
        host      = args.host,
        port      = args.port,
        log_level = "info",
    )


if __name__ == "__main__":
    main()
