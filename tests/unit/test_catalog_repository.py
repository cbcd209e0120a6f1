from unittest.mock import MagicMock, patch

import pytest

from storefront.catalog import repository as catalog_repository
from storefront.checkout.errors import PersistenceError


def test_get_products_map_indexes_by_id():
    client = MagicMock()
    client.table.return_value.select.return_value.in_.return_value.execute.return_value = MagicMock(
        data=[{"id": 1, "name": "Mug", "price": 9.5}, {"id": 2, "name": "Tee", "price": 20}]
    )
    with patch("storefront.infra.supabase_client.get_supabase", return_value=client):
        products = catalog_repository.get_products_map(["1", "2"])

    client.table.assert_called_once_with("products")
    assert set(products) == {"1", "2"}
    assert products["1"]["name"] == "Mug"

def test_empty_ids_skip_the_query():
    with patch("storefront.infra.supabase_client.get_supabase") as get_client:
        assert catalog_repository.get_products_map([]) == {}
    get_client.assert_not_called()

def test_catalog_failure_is_a_persistence_error():
    with patch("storefront.infra.supabase_client.get_supabase", side_effect=Exception("down")):
        with pytest.raises(PersistenceError):
            catalog_repository.fetch_products_by_ids(["1"])
