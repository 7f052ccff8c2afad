"""
Salon Checkout Example

Seeds a stock database from a catalog, runs a few checkouts and a delivery,
and prints the dashboard view after each step.
"""

import logging
import os
import tempfile

from salon_os.catalog import Catalog
from salon_os.config.settings import SalonOSSettings
from salon_os.database.repositories.stock import SqliteStockRepository
from salon_os.inventory_manager import InventoryManager
from salon_os.stock.records import RestockBatch
from salon_os.stock.sale import SaleRequest

CATALOG_PATH = os.path.join(os.path.dirname(__file__), "catalog.yaml")


def print_stock(manager):
    df = manager.to_dataframe()
    print(df[["product_id", "sealed_containers", "open_remaining_ml", "total_available_ml", "status"]].to_string(index=False))


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    db_path = os.path.join(tempfile.mkdtemp(), "salon_stock.db")
    settings = SalonOSSettings(db_path=db_path, catalog_path=CATALOG_PATH)
    manager = InventoryManager(SqliteStockRepository(db_path), settings=settings)
    catalog = Catalog.from_yaml(settings.catalog_path)

    print("=" * 60)
    print("1. Opening stock")
    print("=" * 60)
    catalog.seed(manager)
    print_stock(manager)

    print("\n2. Coloration + brushing for one client")
    sale = SaleRequest(
        sale_id="T-0001",
        lines=(catalog.sale_line("coloration"), catalog.sale_line("brushing")),
        staff_id="amelie",
    )
    outcome = manager.process_sale(sale)
    print(f"   {outcome.status}: {outcome.containers_opened} containers opened")
    print_stock(manager)

    print("\n3. Four more colorations with a heavier color dose")
    for i in range(2, 6):
        sale = SaleRequest(
            sale_id=f"T-{i:04d}",
            lines=(catalog.sale_line("coloration", {"color_cream": 75}),),
        )
        outcome = manager.process_sale(sale)
        if outcome.committed:
            print(f"   {sale.sale_id}: committed")
        else:
            for shortfall in outcome.rejection.shortfalls:
                print(f"   {sale.sale_id}: rejected, {shortfall.product_id} short {shortfall.missing_ml}ml")

    print("\n4. Delivery")
    manager.restock(RestockBatch("color_cream", 6, supplier="Wella", cost_per_container="8.40"))
    print_stock(manager)

    print("\nProducts needing attention:")
    for status in manager.active_alerts():
        print(f"   {status.product_id}: {status.status.value} ({status.total_available_ml}ml)")


if __name__ == "__main__":
    main()
