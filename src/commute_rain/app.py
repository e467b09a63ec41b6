"""FastAPI trigger for the commute rain notifier."""

import os
from datetime import datetime
from typing import Any, Dict

import uvicorn
from fastapi import FastAPI, HTTPException

from commute_rain.config import ConfigurationError, NotifierConfig, load_config_from_env
from commute_rain.data_sources.openweather import ProviderError
from commute_rain.logging_config import configure_logging
from commute_rain.notifications.discord import DeliveryError
from commute_rain.pipelines.notifier import CommuteNotifier

app = FastAPI(
    title="Commute rain notifier",
    description="Alerte pluie, neige et verglas pour le trajet de demain",
    version="1.0.0"
)


def get_config() -> NotifierConfig:
    try:
        return load_config_from_env()
    except ConfigurationError as e:
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/run")
def run() -> Dict[str, str]:
    """Fetch tomorrow's forecast and post both Discord messages."""
    notifier = CommuteNotifier(get_config())
    try:
        notifier.run()
    except (ProviderError, DeliveryError) as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"status": "OK"}


@app.get("/preview")
def preview() -> Dict[str, Any]:
    """Both payloads as they would be posted, without posting them."""
    notifier = CommuteNotifier(get_config())
    try:
        detailed, verdict = notifier.preview()
    except ProviderError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"detailed": detailed, "verdict": verdict}


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}


if __name__ == "__main__":
    configure_logging()
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
