"""Tests for CollectorClient."""

from unittest.mock import Mock

import pytest
import requests

from telemetry_relay import settings
from telemetry_relay.collector_client import CollectorClient
from telemetry_relay.errors import DeliveryError

from conftest import make_record


@pytest.fixture
def session():
    session = Mock(spec=requests.Session)
    session.headers = {}
    return session


@pytest.fixture
def client(session):
    return CollectorClient(url="http://collector.test/api/postNewInfo", session=session)


class TestDeliverSuccess:
    """Tests for accepted deliveries."""

    def test_posts_event_body_with_timeout(self, client, session):
        """Test that one POST with the wire body and explicit timeout is made."""
        session.post.return_value = Mock(status_code=200)
        record = make_record("B", millis=7)

        client.deliver(record)

        session.post.assert_called_once_with(
            "http://collector.test/api/postNewInfo",
            json={"event": "B", "ts": "2024-01-01T00:00:00+00:00", "img_id": "B_7"},
            timeout=(settings.DELIVERY_CONNECT_TIMEOUT, settings.DELIVERY_READ_TIMEOUT),
        )

    def test_any_2xx_is_success(self, client, session):
        """Test that 201/204 responses count as delivered."""
        for status in (201, 204):
            session.post.return_value = Mock(status_code=status)
            client.deliver(make_record("R"))

    def test_json_content_type_header(self, client, session):
        """Test that the session sends JSON headers."""
        assert session.headers["Content-Type"] == "application/json"


class TestDeliverFailure:
    """Tests for failure classification."""

    @pytest.mark.parametrize("status", [301, 400, 404, 429, 500, 503])
    def test_non_2xx_raises_delivery_error(self, client, session, status):
        """Test that non-success statuses become DeliveryError."""
        session.post.return_value = Mock(status_code=status)

        with pytest.raises(DeliveryError) as exc_info:
            client.deliver(make_record("B"))

        assert exc_info.value.status_code == status

    @pytest.mark.parametrize(
        "exc",
        [
            requests.exceptions.ConnectionError("unreachable"),
            requests.exceptions.Timeout("timed out"),
            requests.exceptions.ChunkedEncodingError("reset"),
        ],
    )
    def test_transport_faults_raise_delivery_error(self, client, session, exc):
        """Test that network faults become DeliveryError without a status."""
        session.post.side_effect = exc

        with pytest.raises(DeliveryError) as exc_info:
            client.deliver(make_record("B"))

        assert exc_info.value.status_code is None

    def test_single_attempt_only(self, client, session):
        """Test that the client does not retry on its own."""
        session.post.return_value = Mock(status_code=500)

        with pytest.raises(DeliveryError):
            client.deliver(make_record("B"))

        assert session.post.call_count == 1


def test_default_url_from_settings():
    """Test that the collector URL defaults to the configured endpoint."""
    client = CollectorClient(session=Mock(spec=requests.Session, headers={}))

    assert client.url == settings.COLLECTOR_URL
