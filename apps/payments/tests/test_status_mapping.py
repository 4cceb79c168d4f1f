import pytest
from apps.orders.models import OrderStatus
from apps.payments.status_mapping import map_gateway_status, map_card_status, map_provider_status


class TestMapGatewayStatus:
    """Tests for map_gateway_status()"""

    @pytest.mark.parametrize('code, expected', [
        ('COMPLETED', OrderStatus.COMPLETED),
        ('FAILED', OrderStatus.FAILED),
        ('CANCELED', OrderStatus.FAILED),
        ('AUTHORIZED', OrderStatus.AUTHORIZED),
        ('CREATED', OrderStatus.PENDING),
        ('PENDING', OrderStatus.PENDING),
    ])
    def test_known_codes(self, code, expected):
        assert map_gateway_status(code) == expected

    @pytest.mark.parametrize('code', ['EXPIRED', 'REFUNDED', '', 'SOMETHING_NEW', None, 42])
    def test_unknown_codes_are_pending(self, code):
        assert map_gateway_status(code) == OrderStatus.PENDING

    def test_case_and_whitespace_insensitive(self):
        assert map_gateway_status(' completed ') == OrderStatus.COMPLETED


class TestMapCardStatus:
    """Tests for map_card_status() and map_provider_status()"""

    @pytest.mark.parametrize('code, expected', [
        ('succeeded', OrderStatus.COMPLETED),
        ('canceled', OrderStatus.FAILED),
        ('requires_capture', OrderStatus.AUTHORIZED),
        ('requires_payment_method', OrderStatus.PENDING),
        ('processing', OrderStatus.PENDING),
        (None, OrderStatus.PENDING),
    ])
    def test_card_codes(self, code, expected):
        assert map_card_status(code) == expected

    def test_provider_tables_do_not_mix(self):
        assert map_provider_status('stripe', 'succeeded') == OrderStatus.COMPLETED
        assert map_provider_status('stripe', 'COMPLETED') == OrderStatus.PENDING
        assert map_provider_status('paypay', 'COMPLETED') == OrderStatus.COMPLETED
        assert map_provider_status('paypay', 'succeeded') == OrderStatus.PENDING
