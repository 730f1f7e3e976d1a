"""
Cria as tabelas e uma loja de demonstração (usuários, prateleira, slots e produtos)
"""
import logging

from app.config.database import engine, SessionLocal
from app.shared.database.models import (
    Base, Store, User, Product, VolumetryProduct, Shelf, PlanogramSlot
)
from app.core.auth.service import AuthService

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
logger = logging.getLogger("setup_demo_store")

DEMO_STORE_ID = "LOJA-001"

DEMO_USERS = [
    ("admin@loja.com", "admin123", "Ana", "Admin", "admin"),
    ("gerente@loja.com", "gerente123", "Carlos", "Gerente", "gerente"),
    ("repositor@loja.com", "repositor123", "João", "Repositor", "repositor"),
]

DEMO_PRODUCTS = [
    # id/ean, descrição, categoria, largura, altura, profundidade, empilha, max camadas, preço, margem
    ("7891000100103", "Leite condensado 395g", "mercearia", 7.5, 8.0, 7.5, True, 3, 6.49, 22.0),
    ("7894900011517", "Refrigerante lata 350ml", "bebidas", 6.6, 12.2, 6.6, True, 2, 4.29, 30.0),
    ("7896004000039", "Arroz tipo 1 5kg", "mercearia", 25.0, 35.0, 10.0, False, None, 27.90, 12.0),
]


def setup_demo_store():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()

    try:
        if db.query(Store).filter(Store.id == DEMO_STORE_ID).first():
            logger.info(f"Loja {DEMO_STORE_ID} já existe, nada a fazer")
            return

        db.add(Store(id=DEMO_STORE_ID, name="Loja Demonstração", is_active=True))

        for email, password, first_name, last_name, role in DEMO_USERS:
            db.add(User(
                email=email,
                password_hash=AuthService.get_password_hash(password),
                first_name=first_name,
                last_name=last_name,
                role=role,
                store_id=None if role == "admin" else DEMO_STORE_ID,
                is_active=True
            ))
            logger.info(f"Usuário criado: {email} ({role})")

        db.add(Shelf(
            id="PRAT-001",
            gondola_id="GOND-01",
            store_id=DEMO_STORE_ID,
            usable_width_cm=120,
            usable_depth_cm=40,
            free_height_cm=30,
            level="olhos"
        ))

        position = 0.0
        for index, (ean, description, category, width, height, depth, stackable, max_layers, price, margin) in enumerate(DEMO_PRODUCTS, start=1):
            db.add(Product(id=ean, name=description, ean=ean, sku=f"SKU-{index:03d}", description=description))
            db.add(VolumetryProduct(
                id=ean,
                ean=ean,
                description=description,
                category=category,
                width_cm=width,
                height_cm=height,
                depth_cm=depth,
                stackable=stackable,
                max_vertical_layers=max_layers,
                sale_price=price,
                margin_percent=margin
            ))
            db.add(PlanogramSlot(
                id=f"SLOT-{index:03d}",
                store_id=DEMO_STORE_ID,
                shelf_id="PRAT-001",
                product_id=ean,
                position_x_cm=position,
                slot_width_cm=40,
                defined_facings=int(40 // width)
            ))
            position += 40

        db.commit()
        logger.info(f"Loja {DEMO_STORE_ID} criada com {len(DEMO_PRODUCTS)} slots")

    except Exception as e:
        db.rollback()
        logger.error(f"Erro criando loja de demonstração: {e}", exc_info=True)
        raise

    finally:
        db.close()


if __name__ == "__main__":
    setup_demo_store()
