"""
Configuração do pytest.

Banco SQLite em memória compartilhado (StaticPool) no lugar do Postgres
e usuário autenticado substituível por teste.
"""
import os

# Antes de importar a aplicação
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.config.database import get_db
from app.core.auth.dependencies import get_current_user
from app.shared.database.models import (
    Base, Store, User, Product, VolumetryProduct, Shelf, PlanogramSlot
)
from tests.factories import STORE_ID, OTHER_STORE_ID, LATA_ID, ARROZ_ID


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()

@pytest.fixture
def db_session(db_engine):
    Session = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = Session()
    yield session
    session.close()

@pytest.fixture
def current_user():
    """Usuário devolvido pela dependency de autenticação (admin por padrão)"""
    return User(
        id=1,
        email="admin@loja.com",
        password_hash="x",
        first_name="Ana",
        last_name="Admin",
        role="admin",
        store_id=None,
        is_active=True
    )

@pytest.fixture
def client(db_session, current_user):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: current_user

    yield TestClient(app)

    app.dependency_overrides.clear()

@pytest.fixture
def store(db_session):
    """
    Loja com uma prateleira e dois slots:
    - SLOT-A: lata 6.6 x 12.2 x 6.6 cm, empilhável até 2 camadas -> 6 x 6 x 2 = 72
    - SLOT-B: arroz 25 x 35 x 10 cm, não empilhável -> 1 x 4 x 1 = 4
    """
    db_session.add_all([
        Store(id=STORE_ID, name="Loja Centro", is_active=True),
        Store(id=OTHER_STORE_ID, name="Loja Norte", is_active=True),
    ])
    db_session.add_all([
        Product(id="7894900011517", name="Refrigerante lata 350ml", ean="7894900011517", sku="SKU-001"),
        Product(id="7896004000039", name="Arroz tipo 1 5kg", ean="7896004000039", sku="SKU-002"),
        Product(id="7890000000001", name="Biscoito sem volumetria", ean="7890000000001", sku="SKU-003"),
    ])
    db_session.add_all([
        VolumetryProduct(
            id="7894900011517", ean="7894900011517", description="Refrigerante lata 350ml",
            category="bebidas", width_cm=6.6, height_cm=12.2, depth_cm=6.6, weight_kg=0.37,
            stackable=True, max_vertical_layers=2, sale_price=4.50, margin_percent=20
        ),
        VolumetryProduct(
            id="7896004000039", ean="7896004000039", description="Arroz tipo 1 5kg",
            category="mercearia", width_cm=25, height_cm=35, depth_cm=10, weight_kg=5,
            stackable=False, sale_price=28.00, margin_percent=None
        ),
    ])
    db_session.add(Shelf(
        id="PRAT-001", gondola_id="GOND-01", store_id=STORE_ID,
        usable_width_cm=120, usable_depth_cm=40, free_height_cm=30, level="olhos"
    ))
    db_session.add_all([
        PlanogramSlot(
            id="SLOT-A", store_id=STORE_ID, shelf_id="PRAT-001", product_id=LATA_ID,
            position_x_cm=0, slot_width_cm=40, defined_facings=6
        ),
        PlanogramSlot(
            id="SLOT-B", store_id=STORE_ID, shelf_id="PRAT-001", product_id=ARROZ_ID,
            position_x_cm=40, slot_width_cm=40, defined_facings=1
        ),
    ])
    db_session.commit()
    return STORE_ID

