#!/usr/bin/env python3
"""
Seed the database with sample temples, products and mantras.

Usage:
    python scripts/seed_temples.py          # Add records (skips existing)
    python scripts/seed_temples.py --reset  # Delete temples/products/mantras and re-seed
"""
import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from bhakthas import create_app
from bhakthas.extensions import db
from bhakthas.models import Mantra, Product, Temple

TEMPLES_DATA = [
    {
        "name": "Kashi Vishwanath",
        "deity": "Lord Shiva",
        "city": "Varanasi",
        "state": "Uttar Pradesh",
        "latitude": 25.3109,
        "longitude": 83.0107,
        "rating": 4.9,
        "points": 150,
        "darshan_enabled": True,
        "description": "One of the twelve Jyotirlingas, on the western bank of the Ganga.",
    },
    {
        "name": "Tirumala Venkateswara",
        "deity": "Lord Venkateswara",
        "city": "Tirupati",
        "state": "Andhra Pradesh",
        "latitude": 13.6833,
        "longitude": 79.3474,
        "rating": 4.9,
        "points": 150,
        "darshan_enabled": True,
        "description": "Hill shrine of Lord Venkateswara in the Seshachalam hills.",
    },
    {
        "name": "Meenakshi Amman",
        "deity": "Goddess Meenakshi",
        "city": "Madurai",
        "state": "Tamil Nadu",
        "latitude": 9.9195,
        "longitude": 78.1193,
        "rating": 4.8,
        "points": 100,
        "darshan_enabled": False,
        "description": "Historic temple famed for its towering gopurams.",
    },
    {
        "name": "Jagannath Temple",
        "deity": "Lord Jagannath",
        "city": "Puri",
        "state": "Odisha",
        "latitude": 19.8048,
        "longitude": 85.8181,
        "rating": 4.8,
        "points": 100,
        "darshan_enabled": True,
        "description": "One of the Char Dham pilgrimage sites, home of the Rath Yatra.",
    },
]

PRODUCTS_DATA = [
    {"name": "Brass Diya", "category": "Puja Items", "price": 349, "stock": 120,
     "description": "Hand-polished brass oil lamp"},
    {"name": "Rudraksha Mala", "category": "Malas", "price": 899, "stock": 60,
     "description": "108 bead five-faced rudraksha mala"},
    {"name": "Sandalwood Incense", "category": "Puja Items", "price": 149, "stock": 300,
     "description": "Pack of 40 hand-rolled agarbatti"},
]

MANTRAS_DATA = [
    {"title": "Om Namah Shivaya", "deity": "Lord Shiva", "text": "Om Namah Shivaya",
     "meaning": "I bow to Shiva"},
    {"title": "Hare Krishna Maha Mantra", "deity": "Lord Krishna",
     "text": "Hare Krishna Hare Krishna, Krishna Krishna Hare Hare, "
             "Hare Rama Hare Rama, Rama Rama Hare Hare",
     "meaning": "A call to the divine energy of Krishna and Rama"},
]


def seed(reset: bool = False) -> None:
    app = create_app()

    with app.app_context():
        db.create_all()

        if reset:
            for model in (Mantra, Product, Temple):
                model.query.delete()
            db.session.commit()
            print("Cleared temples, products and mantras")

        added = 0
        for data in TEMPLES_DATA:
            if Temple.query.filter_by(name=data["name"]).first():
                continue
            db.session.add(Temple(**data))
            added += 1
        for data in PRODUCTS_DATA:
            if Product.query.filter_by(name=data["name"]).first():
                continue
            db.session.add(Product(**data))
            added += 1
        for data in MANTRAS_DATA:
            if Mantra.query.filter_by(title=data["title"]).first():
                continue
            db.session.add(Mantra(**data))
            added += 1

        db.session.commit()
        print(f"Seeded {added} records")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed sample temples, products and mantras.")
    parser.add_argument("--reset", action="store_true", help="Delete existing records first")
    seed(parser.parse_args().reset)
