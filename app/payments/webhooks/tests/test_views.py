"""
Tests for the gateway webhook intake endpoint.
"""

from unittest.mock import patch

import pytest

from payments.adapters import GatewayEvent
from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus
from payments.tests.factories import WebhookEventFactory

WEBHOOK_URL = "/api/v1/webhooks/gateway/"


@pytest.fixture
def gateway(mock_gateway):
    with patch("payments.webhooks.views.get_payment_gateway", return_value=mock_gateway):
        yield mock_gateway


@pytest.fixture
def mock_delay():
    with patch("payments.tasks.process_webhook_event.delay") as delay:
        yield delay


def post_webhook(client, signature="t=1,v1=abc"):
    return client.post(
        WEBHOOK_URL,
        data=b'{"id": "evt_1"}',
        content_type="application/json",
        HTTP_STRIPE_SIGNATURE=signature,
    )


class TestGatewayWebhook:
    def test_stores_and_queues_event(self, client, db, gateway, mock_delay):
        gateway.webhook_event = GatewayEvent(
            id="evt_1",
            type="transfer.created",
            payload={"id": "evt_1", "type": "transfer.created", "data": {"object": {"id": "tr_1"}}},
        )

        response = post_webhook(client)

        assert response.status_code == 200
        event = WebhookEvent.objects.get(gateway_event_id="evt_1")
        assert event.event_type == "transfer.created"
        assert event.status == WebhookEventStatus.PENDING
        mock_delay.assert_called_once_with(str(event.id))

    def test_bad_signature_rejected(self, client, db, gateway, mock_delay):
        response = post_webhook(client)

        assert response.status_code == 400
        assert WebhookEvent.objects.count() == 0
        mock_delay.assert_not_called()

    def test_missing_signature_rejected(self, client, db, gateway, mock_delay):
        gateway.webhook_event = GatewayEvent(id="evt_1", type="transfer.created")

        response = post_webhook(client, signature="")

        assert response.status_code == 400

    def test_duplicate_processed_event_not_requeued(self, client, db, gateway, mock_delay):
        WebhookEventFactory(
            gateway_event_id="evt_1",
            event_type="transfer.created",
            status=WebhookEventStatus.PROCESSED,
        )
        gateway.webhook_event = GatewayEvent(id="evt_1", type="transfer.created")

        response = post_webhook(client)

        assert response.status_code == 200
        assert WebhookEvent.objects.count() == 1
        mock_delay.assert_not_called()

    def test_duplicate_unprocessed_event_requeued(self, client, db, gateway, mock_delay):
        existing = WebhookEventFactory(gateway_event_id="evt_1", status=WebhookEventStatus.FAILED)
        gateway.webhook_event = GatewayEvent(id="evt_1", type=existing.event_type)

        post_webhook(client)

        mock_delay.assert_called_once_with(str(existing.id))

    def test_broker_outage_still_acknowledged(self, client, db, gateway, mock_delay):
        gateway.webhook_event = GatewayEvent(id="evt_1", type="transfer.created")
        mock_delay.side_effect = ConnectionError("broker down")

        response = post_webhook(client)

        assert response.status_code == 200
        assert WebhookEvent.objects.filter(gateway_event_id="evt_1").exists()

    def test_get_not_allowed(self, client, db):
        assert client.get(WEBHOOK_URL).status_code == 405
