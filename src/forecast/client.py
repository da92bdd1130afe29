"""
Client for the external quantile forecasting service.
"""

from abc import ABC, abstractmethod

import requests
import structlog

from src.core.errors import ForecastError

from .models import QuantileRequest, TimeSeries

logger = structlog.get_logger(__name__)


class ForecastClient(ABC):
    """Computes a series of predicted quantiles"""

    @abstractmethod
    def predict(self, request: QuantileRequest) -> TimeSeries:
        pass


class HttpForecastClient(ForecastClient):
    """Calls ``POST {base_url}/cpredict`` on the forecasting service"""

    def __init__(
        self, base_url: str, timeout: float = 30.0, session: requests.Session | None = None
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def predict(self, request: QuantileRequest) -> TimeSeries:
        url = f"{self.base_url}/cpredict"
        try:
            response = self.session.post(url, json=request.to_payload(), timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("Forecast request failed", url=url, name=request.name, error=str(e))
            raise ForecastError(f"Forecast request for '{request.name}' failed: {e}") from e

        if "Predictions" not in body:
            raise ForecastError(f"Forecast response for '{request.name}' has no Predictions")

        try:
            return TimeSeries.from_json(body["Predictions"])
        except (KeyError, TypeError, ValueError) as e:
            raise ForecastError(f"Malformed predictions for '{request.name}': {e}") from e

    def close(self) -> None:
        self.session.close()
