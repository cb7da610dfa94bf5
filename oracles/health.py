"""Liveness endpoint for the oracle server."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from oracles.coordinator import OracleCoordinator


def create_app(coordinator: OracleCoordinator) -> FastAPI:
    app = FastAPI(
        title="FlightSurety Oracle Server",
        description="Simulated oracle pool answering flight status requests",
    )

    @app.get("/api")
    def api():
        return {"message": "An API for use with your Dapp!"}

    @app.get("/health")
    def health():
        status = coordinator.status()
        healthy = status["state"] in ("registering", "listening")
        return JSONResponse(
            {"status": "ok" if healthy else "unavailable", **status},
            status_code=200 if healthy else 503,
        )

    return app
