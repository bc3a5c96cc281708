"""Seed database with settings, order statuses and the first admin."""
import os

from orderflow.auth import get_password_hash
from orderflow.database import SessionLocal
from orderflow.models import OrderStatus, User
from orderflow.services.numbering import ensure_settings

ORDER_STATUSES = [
    {"code": "new", "name": "Новая заявка", "color": "#6B7280", "position": 1, "is_initial": True},
    {"code": "estimation", "name": "Оценка", "color": "#3B82F6", "position": 2},
    {"code": "proposal_sent", "name": "КП отправлено", "color": "#8B5CF6", "position": 3, "notify_client": True},
    {"code": "in_progress", "name": "В работе", "color": "#F59E0B", "position": 4},
    {"code": "testing", "name": "Тестирование", "color": "#F97316", "position": 5},
    {"code": "client_review", "name": "Ревью клиента", "color": "#EC4899", "position": 6, "notify_client": True},
    {
        "code": "completed",
        "name": "Завершён",
        "color": "#10B981",
        "position": 7,
        "is_final": True,
        "notify_client": True,
    },
    {"code": "cancelled", "name": "Отменён", "color": "#EF4444", "position": 8, "is_final": True},
]


def seed():
    """Idempotent: existing rows are left untouched."""
    admin_email = os.getenv("ADMIN_EMAIL", "admin@itl.tj").strip().lower()
    admin_password = os.getenv("ADMIN_PASSWORD")
    if not admin_password:
        raise SystemExit(
            "ADMIN_PASSWORD environment variable is required for seeding.\n"
            "Example: ADMIN_PASSWORD=YourSecurePassword123 python seed_data.py"
        )

    db = SessionLocal()

    try:
        ensure_settings(db)

        existing_codes = {code for (code,) in db.query(OrderStatus.code).all()}
        created_statuses = 0
        for status_data in ORDER_STATUSES:
            if status_data["code"] in existing_codes:
                continue
            db.add(OrderStatus(**status_data))
            created_statuses += 1

        admin = db.query(User).filter(User.email == admin_email).first()
        if not admin:
            db.add(
                User(
                    email=admin_email,
                    name="Администратор",
                    password_hash=get_password_hash(admin_password),
                    role="ADMIN",
                )
            )

        db.commit()
        print("✅ Database seeded successfully!")
        print(f"  - order statuses created: {created_statuses}")
        print(f"  - admin: {admin_email}")

    except Exception as e:
        db.rollback()
        print(f"❌ Error seeding database: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed()
