"""
Interbank Gateway Module

REST client for handing Instapay transfers to the external payment switch.
The switch answers asynchronously through the callback endpoint; the
gateway only reports whether a submission was accepted for processing.
"""

import httpx
import time
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, Iterable, Optional

from .interbank import SwitchPayload
from .logging_config import get_logger, log_action

logger = get_logger("secbank.gateway")


BANK_CODES: Dict[str, str] = {
    "BDO": "BDO",
    "BPI": "BPI",
    "Metrobank": "MBTC",
    "UnionBank": "UBP",
    "Landbank": "LBP",
}


def resolve_bank_code(bank_name: str) -> str:
    """Map a display bank name to its switch code; unknown names pass through"""
    return BANK_CODES.get(bank_name, bank_name)


@dataclass
class SwitchAck:
    """Result of handing a payload to the switch"""
    accepted: bool
    switch_reference_number: Optional[str] = None
    message: Optional[str] = None
    latency_ms: float = 0.0


class SwitchGateway(ABC):
    """Contract for transmitting interbank payloads"""

    @abstractmethod
    def submit(self, payload: SwitchPayload) -> SwitchAck:
        """Hand a payload to the switch"""
        pass

    @abstractmethod
    def health_check(self) -> bool:
        pass

    def close(self) -> None:
        pass


class HttpSwitchGateway(SwitchGateway):
    """httpx client for the switch's REST interface"""

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        api_key: Optional[str] = None,
        client: Optional[httpx.Client] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.api_key = api_key
        self._client = client or httpx.Client(timeout=timeout)

    def submit(self, payload: SwitchPayload) -> SwitchAck:
        """POST the payload to {base_url}/instapay/send

        Returns:
            SwitchAck, accepted only on a 2xx answer
        """
        headers = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        start = time.time()
        try:
            response = self._client.post(
                f"{self.base_url}/instapay/send",
                json=payload.to_dict(),
                headers=headers
            )
        except httpx.HTTPError as e:
            logger.error(f"Switch connection failed for {payload.reference_number}: {e}")
            return SwitchAck(accepted=False, message=f"Switch unavailable: {e}")

        latency_ms = (time.time() - start) * 1000

        if 200 <= response.status_code < 300:
            data = self._json_body(response)
            log_action(
                logger, "info", "Payload accepted by switch",
                action="switch_submit", resource=f"interbank:{payload.reference_number}",
                extra={"latency_ms": round(latency_ms, 2), "bank_code": payload.bank_code}
            )
            return SwitchAck(
                accepted=True,
                switch_reference_number=data.get("switchReferenceNumber") or data.get("switch_reference_number"),
                message=data.get("message"),
                latency_ms=latency_ms
            )

        logger.warning(f"Switch returned {response.status_code} for {payload.reference_number}: {response.text}")
        return SwitchAck(
            accepted=False,
            message=f"Switch rejected transfer with status {response.status_code}",
            latency_ms=latency_ms
        )

    @staticmethod
    def _json_body(response: httpx.Response) -> Dict:
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}

    def health_check(self) -> bool:
        """Check if the switch is reachable"""
        try:
            r = self._client.get(f"{self.base_url}/health")
            return r.status_code == 200
        except httpx.HTTPError:
            return False

    def close(self) -> None:
        """Close the HTTP client"""
        self._client.close()


class MockSwitchGateway(SwitchGateway):
    """In-process switch for development and testing"""

    def __init__(self, rejected_bank_codes: Optional[Iterable[str]] = None, max_recorded: int = 1000):
        self.rejected_bank_codes = set(rejected_bank_codes or [])
        # Only the most recent payloads are kept
        self.submitted: Deque[SwitchPayload] = deque(maxlen=max_recorded)

    def submit(self, payload: SwitchPayload) -> SwitchAck:
        self.submitted.append(payload)
        if payload.bank_code in self.rejected_bank_codes:
            return SwitchAck(accepted=False, message=f"Bank {payload.bank_code} unreachable", latency_ms=1.0)
        return SwitchAck(
            accepted=True,
            switch_reference_number=f"SW{payload.reference_number}",
            message="Accepted for processing",
            latency_ms=1.0
        )

    def health_check(self) -> bool:
        """Mock health check always returns True"""
        return True
