"""Seed script: fills the database with sample crew and equipment."""
import os
import sys

# Ensure we're in the project root
sys.path.insert(0, os.path.dirname(__file__))

from app.database import Base, engine, SessionLocal
import app.models  # noqa: F401 (registers all models)
from app.models.user import User, Role
from app.models.equipment import Equipment, Condition
from app.services.user_service import hash_password
import app.services.lifecycle_service as lifecycle_svc


def seed():
    os.makedirs("data", exist_ok=True)
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()

    users = [
        ("admin", "Administrator", Role.admin),
        ("bob", "Bob Manager", Role.manager),
        ("alice", "Alice Crew", Role.crew),
    ]
    for username, name, role in users:
        if not db.query(User).filter_by(username=username).first():
            db.add(User(
                username=username,
                email=f"{username}@kittrack.example.com",
                name=name,
                hashed_password=hash_password("admin123" if role == Role.admin else "password123"),
                role=role.value,
            ))
    db.commit()

    equipment_data = [
        ("CAM-001", "Sony A7S III", "Camera", "Shelf A", "Sony", "ILCE-7SM3"),
        ("CAM-002", "Blackmagic Pocket 6K", "Camera", "Shelf A", "Blackmagic", "BMPCC6K"),
        ("LENS-001", "Canon 24-70mm f/2.8", "Lens", "Shelf B", "Canon", "EF 24-70 II"),
        ("LENS-002", "Sigma 18-35mm f/1.8", "Lens", "Shelf B", "Sigma", "Art 18-35"),
        ("AUD-001", "Sennheiser MKH 416", "Audio", "Audio Cabinet", "Sennheiser", "MKH 416"),
        ("AUD-002", "Zoom F6 Recorder", "Audio", "Audio Cabinet", "Zoom", "F6"),
        ("LGT-001", "Aputure 300d II", "Lighting", "Light Rack", "Aputure", "LS C300d II"),
        ("GRP-001", "Manfrotto 504X Tripod", "Grip", "Grip Room", "Manfrotto", "504X"),
    ]
    existing = {e.barcode for e in db.query(Equipment).all()}
    for barcode, name, category, location, brand, model in equipment_data:
        if barcode not in existing:
            db.add(Equipment(
                barcode=barcode,
                name=name,
                category=category,
                location=location,
                brand=brand,
                model=model,
                condition=Condition.OK,
            ))
    db.commit()

    # One open checkout so the returns/verification flow has something to show
    alice = db.query(User).filter_by(username="alice").one()
    audio = db.query(Equipment).filter_by(barcode="AUD-001").one()
    if not lifecycle_svc.open_transactions_holding(db, audio.id) and audio.status.value == "AVAILABLE":
        lifecycle_svc.checkout(db, [audio.id], alice.id, project="Interview Shoot", actor_id=alice.id)

    db.close()
    print("Seed complete.")


if __name__ == "__main__":
    seed()
