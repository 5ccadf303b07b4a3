"""
전송 계층: HttpBackend (requests) / SyntheticBackend (결정적 가짜 응답)
"""
from unittest.mock import MagicMock

import pytest
import requests
from django.core.exceptions import ImproperlyConfigured

from domains.shipments.adapters.backends import HttpBackend, SyntheticBackend, build_backend
from domains.shipments.adapters.cainiao import CainiaoAdapter
from domains.shipments.adapters.dhl import DHLAdapter
from domains.shipments.adapters.seventeentrack import SeventeenTrackAdapter
from domains.shipments.adapters.ups import UPSAdapter
from domains.shipments.adapters.yunexpress import YunExpressAdapter
from domains.shipments.exceptions import CarrierUnavailable, TrackingNumberNotFound

from .factories import NOW

CARRIERS = {"dhl": {"url": "https://dhl.test/track/", "api_key": "secret"}}
ALL_ADAPTERS = [DHLAdapter, UPSAdapter, SeventeenTrackAdapter, CainiaoAdapter, YunExpressAdapter]


def _response(status_code=200, json_data=None, json_error=False):
    resp = MagicMock()
    resp.status_code = status_code
    resp.text = "body"
    if json_error:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = json_data
    return resp


def _http(session):
    return HttpBackend(carriers=CARRIERS, timeout=3, session=session)


# ─────────────────────────────────────────────────────────────
# HttpBackend
# ─────────────────────────────────────────────────────────────
class TestHttpBackend:
    def test_success_sends_carrier_request_with_timeout(self):
        session = MagicMock()
        session.request.return_value = _response(
            json_data={"shipments": [{"id": "DHL123", "status": "transit", "events": []}]}
        )
        adapter = DHLAdapter(backend=_http(session))

        result = adapter.fetch("DHL123")

        assert result.status == "in_transit"
        args, kwargs = session.request.call_args
        assert args == ("GET", "https://dhl.test/track/shipments")
        assert kwargs["params"] == {"trackingNumber": "DHL123"}
        assert kwargs["headers"]["DHL-API-Key"] == "secret"
        assert kwargs["headers"]["Accept"] == "application/json"
        assert kwargs["timeout"] == 3

    def test_timeout_is_carrier_unavailable(self):
        session = MagicMock()
        session.request.side_effect = requests.Timeout("slow")
        with pytest.raises(CarrierUnavailable) as exc:
            DHLAdapter(backend=_http(session)).fetch("DHL123")
        assert exc.value.carrier == "dhl"
        assert exc.value.tracking_number == "DHL123"

    def test_connection_error_is_carrier_unavailable(self):
        session = MagicMock()
        session.request.side_effect = requests.ConnectionError("down")
        with pytest.raises(CarrierUnavailable):
            DHLAdapter(backend=_http(session)).fetch("DHL123")

    def test_404_is_tracking_number_not_found(self):
        session = MagicMock()
        session.request.return_value = _response(status_code=404)
        with pytest.raises(TrackingNumberNotFound):
            DHLAdapter(backend=_http(session)).fetch("NOPE")

    @pytest.mark.parametrize("code", [401, 429, 500, 502])
    def test_other_non_2xx_is_unavailable(self, code):
        session = MagicMock()
        session.request.return_value = _response(status_code=code)
        with pytest.raises(CarrierUnavailable):
            DHLAdapter(backend=_http(session)).fetch("DHL123")

    def test_invalid_json_is_unavailable(self):
        session = MagicMock()
        session.request.return_value = _response(json_error=True)
        with pytest.raises(CarrierUnavailable):
            DHLAdapter(backend=_http(session)).fetch("DHL123")

    def test_unconfigured_carrier_is_unavailable(self):
        session = MagicMock()
        with pytest.raises(CarrierUnavailable):
            UPSAdapter(backend=_http(session)).fetch("1Z999")
        session.request.assert_not_called()

    def test_owned_session_closed_after_each_fetch(self, monkeypatch):
        opened = []
        outcomes = iter(
            [
                _response(json_data={"shipments": [{"id": "DHL123", "status": "transit"}]}),
                requests.ConnectionError("down"),
            ]
        )

        def fake_session_cls():
            session = MagicMock()
            session.__enter__.return_value = session
            session.request.side_effect = [next(outcomes)]
            opened.append(session)
            return session

        monkeypatch.setattr("domains.shipments.adapters.backends.requests.Session", fake_session_cls)
        backend = HttpBackend(carriers=CARRIERS, timeout=3)

        DHLAdapter(backend=backend).fetch("DHL123")
        with pytest.raises(CarrierUnavailable):
            DHLAdapter(backend=backend).fetch("DHL123")

        assert len(opened) == 2
        assert all(s.__exit__.called for s in opened)


# ─────────────────────────────────────────────────────────────
# SyntheticBackend
# ─────────────────────────────────────────────────────────────
def _synthetic(seed="s1"):
    return SyntheticBackend(clock=lambda: NOW, seed=seed, latency=0)


@pytest.mark.parametrize("adapter_cls", ALL_ADAPTERS)
def test_synthetic_payload_round_trips_through_adapter(adapter_cls):
    adapter = adapter_cls(backend=_synthetic())
    result = adapter.fetch("TRACK-001")

    history = result.tracking_history
    assert 3 <= len(history) <= 8
    stamps = [e.timestamp for e in history]
    assert stamps == sorted(stamps, reverse=True)
    assert history[-1].status_code == "pending"
    assert history[0].status_code in ("in_transit", "delivered")
    assert result.status == history[0].status_code
    assert result.raw["synthetic"] is True
    if result.status == "delivered" or not adapter.provides_eta:
        assert result.estimated_delivery_date is None
    else:
        assert result.estimated_delivery_date > NOW


@pytest.mark.parametrize("adapter_cls", ALL_ADAPTERS)
def test_synthetic_is_deterministic_per_tracking_number(adapter_cls):
    a = adapter_cls(backend=_synthetic()).fetch("TRACK-001")
    b = adapter_cls(backend=_synthetic()).fetch("TRACK-001")
    assert a.status == b.status
    assert a.tracking_history == b.tracking_history


def test_synthetic_events_are_one_to_two_days_apart():
    events, _ = _synthetic().trajectory(DHLAdapter(backend=_synthetic()), "TRACK-002")
    for newer, older in zip(events, events[1:]):
        gap = (newer[0] - older[0]).total_seconds() / 86400
        assert 1 <= gap < 2


def test_build_backend_from_settings(settings):
    settings.SHIPMENTS_CARRIER_BACKEND = "http"
    assert isinstance(build_backend(), HttpBackend)
    settings.SHIPMENTS_CARRIER_BACKEND = "Synthetic"
    assert isinstance(build_backend(), SyntheticBackend)
    settings.SHIPMENTS_CARRIER_BACKEND = "carrier-pigeon"
    with pytest.raises(ImproperlyConfigured):
        build_backend()
