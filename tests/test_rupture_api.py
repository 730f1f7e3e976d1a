from datetime import datetime, timedelta

import pytest

from app.main import app
from app.core.auth.dependencies import get_current_user
from app.shared.database.models import User
from tests.factories import (
    STORE_ID, OTHER_STORE_ID, LATA_ID, ARROZ_ID,
    add_reading, add_event
)

BASE = "/api/v1/rupture"


@pytest.fixture
def loss_events(db_session, store):
    now = datetime.now()
    add_event(db_session, LATA_ID, "SLOT-A", now - timedelta(days=3), ended_at=now - timedelta(days=3) + timedelta(hours=5),
              duration_hours=5, units_not_sold=5, revenue_lost=22.5, margin_lost=4.5)
    add_event(db_session, LATA_ID, "SLOT-A", now - timedelta(days=1), ended_at=now - timedelta(days=1) + timedelta(hours=2),
              duration_hours=2, units_not_sold=2, revenue_lost=10.0, margin_lost=2.0)
    add_event(db_session, ARROZ_ID, "SLOT-B", now - timedelta(days=2), ended_at=now - timedelta(days=2) + timedelta(hours=4),
              duration_hours=4, units_not_sold=2, revenue_lost=56.0)
    add_event(db_session, "PRODUTO-REMOVIDO", None, now - timedelta(days=5), ended_at=now - timedelta(days=5) + timedelta(hours=1),
              duration_hours=1, units_not_sold=1, revenue_lost=1.0, margin_lost=0.1)
    # Evento ainda aberto, sem perda calculada
    add_event(db_session, LATA_ID, "SLOT-A", now - timedelta(hours=3))
    # Fora da janela padrão de 30 dias
    add_event(db_session, ARROZ_ID, "SLOT-B", now - timedelta(days=40), revenue_lost=500.0)
    # Outra loja
    add_event(db_session, ARROZ_ID, None, now - timedelta(days=1), revenue_lost=300.0, store_id=OTHER_STORE_ID)


class TestRevenueLoss:
    def test_requires_store(self, client, store):
        assert client.get(f"{BASE}/perda-receita").status_code == 400

    def test_no_events(self, client, store):
        response = client.get(f"{BASE}/perda-receita", params={"store_id": STORE_ID})

        data = response.json()
        assert response.status_code == 200
        assert data["products"] == []
        assert data["total_products"] == 0
        assert data["totals"] == {"revenue_lost": 0.0, "margin_lost": 0.0, "units_not_sold": 0.0}
        assert data["period"]["days"] == 30

    def test_products_sorted_by_revenue_lost(self, client, loss_events):
        response = client.get(f"{BASE}/perda-receita", params={"store_id": STORE_ID})

        data = response.json()
        products = data["products"]
        assert [p["product_id"] for p in products] == [ARROZ_ID, LATA_ID, "PRODUTO-REMOVIDO"]

        lata = products[1]
        assert lata["total_rupture_events"] == 3
        assert lata["total_rupture_hours"] == pytest.approx(7)
        assert lata["units_not_sold"] == pytest.approx(7)
        assert lata["revenue_lost"] == pytest.approx(32.5)
        assert lata["margin_lost"] == pytest.approx(6.5)
        assert lata["description"] == "Refrigerante lata 350ml"

        assert products[0]["margin_lost"] is None
        assert products[2]["description"] == "Produto desconhecido"
        assert products[2]["ean"] == ""

    def test_limit_keeps_totals_of_all_products(self, client, loss_events):
        response = client.get(f"{BASE}/perda-receita", params={"store_id": STORE_ID, "limit": 1})

        data = response.json()
        assert data["returned_products"] == 1
        assert data["total_products"] == 3
        assert data["totals"]["revenue_lost"] == pytest.approx(89.5)
        assert data["totals"]["margin_lost"] == pytest.approx(6.6)
        assert data["totals"]["units_not_sold"] == pytest.approx(10)

    def test_period_days(self, client, loss_events):
        response = client.get(f"{BASE}/perda-receita", params={"store_id": STORE_ID, "period_days": 60})

        products = response.json()["products"]
        assert products[0]["product_id"] == ARROZ_ID
        assert products[0]["revenue_lost"] == pytest.approx(556)

    def test_zero_margin_is_kept(self, client, store, db_session):
        now = datetime.now()
        add_event(db_session, LATA_ID, "SLOT-A", now - timedelta(days=1), ended_at=now - timedelta(hours=20),
                  duration_hours=4, units_not_sold=0, revenue_lost=0.0, margin_lost=0.0)
        add_event(db_session, ARROZ_ID, "SLOT-B", now - timedelta(days=1), revenue_lost=10.0)

        response = client.get(f"{BASE}/perda-receita", params={"store_id": STORE_ID})

        by_id = {p["product_id"]: p for p in response.json()["products"]}
        assert by_id[LATA_ID]["margin_lost"] == 0.0
        assert by_id[ARROZ_ID]["margin_lost"] is None


class TestRuptureByTime:
    @pytest.fixture
    def readings(self, db_session, store):
        base = (datetime.now() - timedelta(days=2)).replace(hour=10, minute=0, second=0, microsecond=0)
        add_reading(db_session, "SLOT-A", LATA_ID, 0, base)
        add_reading(db_session, "SLOT-A", LATA_ID, 60, base + timedelta(minutes=30))
        add_reading(db_session, "SLOT-B", ARROZ_ID, 4, base + timedelta(hours=5))
        add_reading(db_session, "SLOT-B", ARROZ_ID, 0, base + timedelta(hours=5, minutes=10))
        # 5/72 abaixo do limiar crítico: ruptura funcional
        add_reading(db_session, "SLOT-A", LATA_ID, 5, base + timedelta(hours=5, minutes=20))
        return base

    def test_requires_store(self, client, store):
        assert client.get(f"{BASE}/ruptura-horario").status_code == 400

    def test_invalid_group_by(self, client, store):
        response = client.get(f"{BASE}/ruptura-horario", params={"store_id": STORE_ID, "group_by": "mes"})
        assert response.status_code == 400

    def test_no_readings(self, client, store):
        response = client.get(f"{BASE}/ruptura-horario", params={"store_id": STORE_ID})

        data = response.json()
        assert data["buckets"] == []
        assert data["summary"] == {"total_checks": 0, "total_ruptures": 0, "average_rupture_rate": 0.0}

    def test_group_by_hour(self, client, readings):
        response = client.get(f"{BASE}/ruptura-horario", params={"store_id": STORE_ID})

        data = response.json()
        assert data["group_by"] == "hora"
        assert [(b["hour"], b["total_checks"], b["ruptured_checks"]) for b in data["buckets"]] == [
            (10, 2, 1),
            (15, 3, 2),
        ]
        assert data["buckets"][0]["rupture_rate"] == pytest.approx(0.5)
        assert data["buckets"][0]["weekday"] is None
        assert data["summary"]["total_checks"] == 5
        assert data["summary"]["total_ruptures"] == 3
        assert data["summary"]["average_rupture_rate"] == pytest.approx(0.6)

    def test_group_by_weekday_sunday_first(self, client, readings):
        response = client.get(
            f"{BASE}/ruptura-horario", params={"store_id": STORE_ID, "group_by": "dia_semana"}
        )

        buckets = response.json()["buckets"]
        assert len(buckets) == 1
        assert buckets[0]["weekday"] == (readings.weekday() + 1) % 7
        assert buckets[0]["hour"] is None
        assert buckets[0]["total_checks"] == 5


class TestTopLostRevenue:
    def test_default_window(self, client, loss_events):
        response = client.get(f"{BASE}/top-lost-revenue", params={"store_id": STORE_ID})

        assert response.status_code == 200
        items = response.json()["top_lost_revenue"]
        assert [i["product_id"] for i in items] == [ARROZ_ID, LATA_ID, "PRODUTO-REMOVIDO"]
        assert items[0]["total_revenue_lost"] == pytest.approx(56)
        assert items[0]["product"]["ean"] == ARROZ_ID
        assert items[2]["product"] is None

    def test_limit(self, client, loss_events):
        response = client.get(f"{BASE}/top-lost-revenue", params={"store_id": STORE_ID, "limit": 1})

        assert len(response.json()["top_lost_revenue"]) == 1

    def test_invalid_range(self, client, store):
        response = client.get(f"{BASE}/top-lost-revenue", params={
            "store_id": STORE_ID,
            "start_date": "2024-03-10T00:00:00",
            "end_date": "2024-03-01T00:00:00"
        })
        assert response.status_code == 400

    def test_store_access(self, client, loss_events):
        user = User(
            id=3, email="gerente@loja.com", password_hash="x", first_name="Carlos",
            last_name="Gerente", role="gerente", store_id=OTHER_STORE_ID, is_active=True
        )
        app.dependency_overrides[get_current_user] = lambda: user

        response = client.get(f"{BASE}/top-lost-revenue", params={"store_id": STORE_ID})

        assert response.status_code == 403


class TestRuptureTimeseries:
    def test_daily_percent_of_slots(self, client, store, db_session):
        add_event(db_session, LATA_ID, "SLOT-A", datetime(2024, 3, 2, 9, 0))
        add_event(db_session, LATA_ID, "SLOT-A", datetime(2024, 3, 1, 9, 0))
        add_event(db_session, ARROZ_ID, "SLOT-B", datetime(2024, 3, 2, 16, 0))
        add_event(db_session, ARROZ_ID, "SLOT-B", datetime(2024, 3, 20, 16, 0))

        response = client.get(f"{BASE}/timeseries", params={
            "store_id": STORE_ID,
            "start_date": "2024-03-01T00:00:00",
            "end_date": "2024-03-10T00:00:00"
        })

        data = response.json()
        assert data["total_slots"] == 2
        assert data["data"] == [
            {"day": "2024-03-01", "events": 1, "rupture_percent": 50.0},
            {"day": "2024-03-02", "events": 2, "rupture_percent": 100.0},
        ]

    def test_requires_dates(self, client, store):
        response = client.get(f"{BASE}/timeseries", params={"store_id": STORE_ID})
        assert response.status_code == 422


def test_health(client):
    assert client.get(f"{BASE}/health").json()["status"] == "healthy"
