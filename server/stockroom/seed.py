import logging

from sqlalchemy.orm import Session

from .db import SessionLocal
from .models import StockItem
from .warehouse.service import create_item


logger = logging.getLogger(__name__)

SKU_PREFIX = "HERR"

TOOL_CATALOG = [
    ("ESPÁTULAS DE ACERO INOXIDABLE DE 200-250 MM", 3),
    ("PULIDORAS INALÁMBRICA DE 600 A 3500 RPM.", 3),
    ("JUEGOS DE ESLINGA DE DIFERENTES CAPACIDADES", 3),
    ("TALADROS PORTÁTILES DE NIVEL AJUSTABLE", 3),
    ("JUEGO DE DESARMADORES CLEMERO DE DIFERENTES MEDIDAS.", 6),
    ("JUEGO DE LLAVES ALLEN DE DIFERENTES MEDIDAS.", 6),
    ("JUEGO DE LLAVES MIXTAS DE DIFERENTES MEDIDAS.", 6),
    ("JUEGO DE LLAVES TORX DE DIFERENTES MEDIDAS.", 6),
    ("PINZAS DE CORTE.", 6),
    ("PINZAS DE ELECTRICISTA.", 6),
    ("PINZAS MECÁNICAS.", 6),
    ("PINZAS DE PUNTA.", 6),
    ("PONCHADORAS DE CABLE.", 3),
    ("JUEGO DE AUTOCLEAN PROFESIONAL ESTÁNDAR Y MILIMÉTRICO.", 6),
    ("EQUIPO DE TOPOGRAFÍA (ESTACIÓN TOTAL, NIVEL AUTOMÁTICO).", 1),
    ("BINOCULARES DE LARGO ALCANCE DE MIN AUMENTO DE 20X", 2),
    ("LÁMPARAS LED PORTÁTILES DE LUZ BLANCA DE LARGO ALCANCE DE MIN 850 LÚMENES", 8),
    ("BOMBA HIDRÁULICA Y PISTÓN 5850 KGF (20 TONELADAS)", 1),
    ("BOMBA HIDRÁULICA Y PISTÓN 10 000 PSI (10 T)", 1),
    ("CALIBRADOR DIGITAL 0 MM A 150 MM", 2),
    ("OSCILOSCOPIO DE DOBLE CANAL (DIGITAL) 300 V AC A 100 MHZ", 1),
    ("MANÓMETRO DE BOURDON (0-140 PSI) 0 A 10 BAR", 2),
    ("MANÓMETRO 0 A 400 PSI", 2),
    ("MEDIDOR DE VIBRACIONES", 2),
    ("MEDIDORES DE TEMPERATURA -200 A 1370° C", 2),
    ("CALIBRADOR VERNIER 0 MM A 200 MM", 2),
    ("ASPIRADORAS DE MIN 5 H.P.", 3),
    ("COMPRESORES DE MIN 2.5 HP.", 3),
    ("ESMERILES ANGULARES DE MIN 6,600 RPM", 3),
    ("IMPRESORA ETIQUETADORA PARA IDENTIFICAR CABLES.", 3),
    ("PLANTAS DE SOLDAR DE CD.", 3),
    ("TORQUÍMETRO 1000 LB-FT (1355.82 NM)", 2),
    ("TORQUÍMETRO 600 LB-FT (813.49 NM)", 2),
    ("MULTIPLICADOR DE TORQUE 3200 LB-FT", 2),
    ("AMPERÍMETROS DIGITALES MARCA FLUKE 373 O DE MEJOR CALIDAD", 4),
    ("MULTÍMETROS DIGITALES MARCA FLUKE 87V O DE MEJOR CALIDAD", 2),
    ("MEGÓHMETRO MULTIFUNCIÓN", 1),
]


def catalog_sku(index: int) -> str:
    return f"{SKU_PREFIX}-{index + 1:04d}"


def seed_warehouse(db: Session) -> tuple[int, int]:
    """Insert the tool catalog, skipping entries whose name or SKU already exists."""
    created = 0
    skipped = 0
    for index, (name, quantity) in enumerate(TOOL_CATALOG):
        sku = catalog_sku(index)
        existing = (
            db.query(StockItem.id)
            .filter((StockItem.name == name) | (StockItem.sku == sku))
            .first()
        )
        if existing:
            skipped += 1
            continue
        create_item(
            db,
            {
                "sku": sku,
                "name": name,
                "category": "Herramienta",
                "unit": "pieza",
                "quantity_on_hand": quantity,
            },
        )
        created += 1
    db.commit()
    logger.info("Warehouse seed complete: created=%s skipped=%s", created, skipped)
    return created, skipped


def run_seed() -> tuple[int, int]:
    db: Session = SessionLocal()
    try:
        return seed_warehouse(db)
    finally:
        db.close()
