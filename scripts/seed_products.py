#!/usr/bin/env python
"""
Seed Catalog Products

Loads the starter connector catalog into the products table.

Usage:
    python scripts/seed_products.py

Idempotent: skips products whose SKU already exists.
"""

import asyncio
import sys
from pathlib import Path

from sqlalchemy import insert, select

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from app.config import settings  # noqa: E402
from app.database import Database  # noqa: E402
from app.models import Product  # noqa: E402

products = Product.__table__

BRASS_PBT = "Nickel-plated brass, PBT housing"
STANDARD_TEMPERATURE = "-40°C to +85°C"


def connector(sku, name, category, connector_type, coding, pins, gender, ip_rating,
              voltage, current, stock_quantity, application, wire_gauge="AWG 24-28"):
    slug = sku.lower().replace("lei-", "")
    return {
        "sku": sku,
        "name": name,
        "category": category,
        "description": f"Professional grade {name} for {application}.",
        "technical_description": (
            f"{connector_type} {coding}-coded connector with {pins} pins, rated {ip_rating}, "
            f"designed for {application}."
        ),
        "coding": coding,
        "pins": pins,
        "ip_rating": ip_rating,
        "gender": gender,
        "connector_type": connector_type,
        "specifications": {
            "material": BRASS_PBT,
            "voltage": voltage,
            "current": current,
            "temperatureRange": STANDARD_TEMPERATURE,
            "wireGauge": wire_gauge,
        },
        "price_type": "quote",
        "in_stock": stock_quantity > 0,
        "stock_quantity": stock_quantity,
        "images": [f"/images/{slug}.jpg"],
        "datasheet_url": f"/datasheets/{slug}.pdf",
        "version": 1,
    }


PRODUCTS_TO_SEED = [
    connector("LEI-M12-A-5P-M", "M12 A-Coded 5-Pin Male Field Wireable Connector", "M12 Connectors",
              "M12", "A", 5, "Male", "IP67", "250V AC/DC", "4A", 150, "sensor and actuator wiring"),
    connector("LEI-M12-A-5P-F", "M12 A-Coded 5-Pin Female Field Wireable Connector", "M12 Connectors",
              "M12", "A", 5, "Female", "IP67", "250V AC/DC", "4A", 120, "sensor and actuator wiring"),
    connector("LEI-M12-A-4P-M", "M12 A-Coded 4-Pin Male Field Wireable Connector", "M12 Connectors",
              "M12", "A", 4, "Male", "IP67", "250V AC/DC", "4A", 200, "standard sensor applications"),
    connector("LEI-M12-A-3P-M", "M12 A-Coded 3-Pin Male Field Wireable Connector", "M12 Connectors",
              "M12", "A", 3, "Male", "IP67", "250V AC/DC", "4A", 110, "proximity sensors"),
    connector("LEI-M12-B-5P-M", "M12 B-Coded 5-Pin Male Field Wireable Connector", "M12 Connectors",
              "M12", "B", 5, "Male", "IP67", "30V DC", "2A", 80, "fieldbus networks"),
    connector("LEI-M12-D-4P-M", "M12 D-Coded 4-Pin Male Field Wireable Connector", "M12 Connectors",
              "M12", "D", 4, "Male", "IP67", "30V DC", "1.5A", 95, "industrial Ethernet"),
    connector("LEI-M12-X-12P-M", "M12 X-Coded 12-Pin Male Field Wireable Connector", "M12 Connectors",
              "M12", "X", 12, "Male", "IP67", "60V DC", "0.5A", 40, "high-density signal wiring",
              wire_gauge="AWG 26"),
    connector("LEI-M8-A-4P-M", "M8 A-Coded 4-Pin Male Field Wireable Connector", "M8 Connectors",
              "M8", "A", 4, "Male", "IP67", "250V AC/DC", "2A", 175, "compact sensor heads"),
    connector("LEI-M8-D-4P-M", "M8 D-Coded 4-Pin Male Ethernet Connector", "M8 Connectors",
              "M8", "D", 4, "Male", "IP67", "30V DC", "1.5A", 60, "compact Ethernet devices"),
    connector("LEI-RJ45-IP67-1M", "RJ45 Industrial IP67 Patch Cord (1m)", "RJ45 Patch Cords",
              "RJ45", "X", 8, "Male", "IP67", "30V DC", "1.5A", 250, "wet-area network links",
              wire_gauge="AWG 26/7"),
    connector("LEI-RJ45-IP20-2M", "RJ45 Industrial IP20 Patch Cord (2m)", "RJ45 Patch Cords",
              "RJ45", "X", 8, "Male", "IP20", "30V DC", "1.5A", 300, "control cabinet networking",
              wire_gauge="AWG 26/7"),
    connector("LEI-PROFINET-M12-RJ45-3M", "PROFINET M12 to RJ45 Cordset (3m)", "PROFINET Products",
              "M12", "D", 4, "Male", "IP67", "30V DC", "1.5A", 45, "PROFINET field devices",
              wire_gauge="AWG 22/7"),
]


async def seed_products(database: Database):
    """
    Seed the catalog with starter products.

    Idempotent: checks for existing SKUs before inserting.
    """
    seeded_count = 0
    skipped_count = 0

    existing = await database.query_with_retry(select(products.c.sku), operation_name="list_skus")
    known_skus = {row["sku"] for row in existing.rows}

    for product in PRODUCTS_TO_SEED:
        if product["sku"] in known_skus:
            print(f"⏭️  Skipping {product['sku']} - already exists")
            skipped_count += 1
            continue

        await database.query_with_retry(insert(products).values(**product), operation_name="seed_product")
        print(f"✅ Seeded {product['sku']} ({product['name']})")
        seeded_count += 1

    print(f"\n{'='*60}")
    print("Product seeding complete!")
    print(f"  Seeded: {seeded_count} products")
    print(f"  Skipped: {skipped_count} products (already exist)")
    print(f"{'='*60}")


async def main():
    database = Database.from_settings(settings)
    try:
        await seed_products(database)
    except Exception as e:
        print(f"❌ Error seeding products: {e}")
        raise
    finally:
        await database.dispose()


if __name__ == '__main__':
    asyncio.run(main())
