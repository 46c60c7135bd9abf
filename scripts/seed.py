import random
import sys
from datetime import datetime
from pathlib import Path

# --- PATH FIXER ---
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.append(str(PROJECT_ROOT))

from sqlmodel import Session, select

from gotocard import CardType, CreditCard, SqlStore, create_db_and_tables, engine

# --- CONFIGURATION ---
NUM_USERS = 3
MONTHS_HISTORY = 3  # How many past months of spending per user
RECORDS_PER_MONTH = 4  # Spending entries per category per month

# --- DATASETS ---

CATEGORIES = [
    ("Dining", "Restaurants, cafes and food delivery", "🍽️"),
    ("Groceries", "Supermarkets and online grocers", "🛒"),
    ("Transport", "Ride hailing, taxis and public transport", "🚕"),
    ("Online Shopping", "E-commerce and marketplaces", "🛍️"),
    ("Travel", "Flights, hotels and travel agencies", "✈️"),
    ("Petrol", "Fuel stations", "⛽"),
]

# Typical monthly spend range per category (SGD)
SPEND_RANGES = {
    "Dining": (40, 180),
    "Groceries": (30, 150),
    "Transport": (10, 60),
    "Online Shopping": (20, 200),
    "Travel": (0, 400),
    "Petrol": (0, 80),
}

USERS = [
    ("Alex Tan", "alex@example.com", 48000.0),
    ("Priya Nair", "priya@example.com", 120000.0),
    ("Sam Lee", "sam@example.com", None),
]


def get_card_definitions():
    """Card catalog as scraped from singsaver / moneysmart listings."""
    return [
        {
            "card": dict(
                name="Live Fresh Card",
                bank="DBS",
                card_type=CardType.VISA,
                annual_fee=196.20,
                min_income=30000,
                welcome_bonus="S$150 cashback",
                source_url="singsaver",
            ),
            "benefits": [
                {"category": "Online Shopping", "cashback_rate": 5.0, "cap": 600, "min_spend": 800},
                {"category": "Transport", "cashback_rate": 5.0, "cap": 600, "min_spend": 800},
                {"category": "Groceries", "cashback_rate": 0.3},
            ],
        },
        {
            "card": dict(
                name="SMART$ Card",
                bank="OCBC",
                card_type=CardType.VISA,
                annual_fee=0.0,
                min_income=30000,
                source_url="moneysmart",
            ),
            "benefits": [
                {"category": "Dining", "cashback_rate": 3.0},
                {"category": "Groceries", "cashback_rate": 3.0},
            ],
        },
        {
            "card": dict(
                name="KrisFlyer UOB Credit Card",
                bank="UOB",
                card_type=CardType.MASTERCARD,
                annual_fee=196.20,
                min_income=30000,
                welcome_bonus="Up to 20,000 KrisFlyer miles",
                source_url="singsaver",
            ),
            "benefits": [
                {"category": "Travel", "miles_rate": 3.0},
                {"category": "Dining", "miles_rate": 3.0, "cap": 1000},
                {"category": "Online Shopping", "miles_rate": 1.2},
            ],
        },
        {
            "card": dict(
                name="Rewards+ Card",
                bank="HSBC",
                card_type=CardType.VISA,
                annual_fee=196.20,
                min_income=30000,
                source_url="moneysmart",
            ),
            "benefits": [
                {"category": "Dining", "points_rate": 10.0, "cap": 1000},
                {"category": "Online Shopping", "points_rate": 10.0, "cap": 1000},
            ],
        },
        {
            "card": dict(
                name="Visa Infinite",
                bank="Citi",
                card_type=CardType.VISA,
                annual_fee=588.50,
                min_income=120000,
                welcome_bonus="25,000 miles",
                source_url="singsaver",
            ),
            "benefits": [
                {"category": "Travel", "miles_rate": 2.0},
                {"category": "Dining", "miles_rate": 1.6},
                {"category": "Petrol", "miles_rate": 1.6},
            ],
        },
        {
            "card": dict(
                name="Simply Cash Card",
                bank="Standard Chartered",
                card_type=CardType.MASTERCARD,
                annual_fee=0.0,
                min_income=30000,
                source_url="moneysmart",
                is_active=False,
            ),
            "benefits": [
                {"category": "Dining", "cashback_rate": 1.5},
                {"category": "Petrol", "cashback_rate": 1.5},
            ],
        },
    ]


def seed():
    create_db_and_tables()
    store = SqlStore(engine)

    with Session(engine) as session:
        existing = session.exec(select(CreditCard)).first()

    if existing:
        print("⚠️  Database already has cards. Skipping seeding.")
        return

    # 1. Categories
    category_ids = {}
    for name, description, icon in CATEGORIES:
        category_ids[name] = store.add_category(name, description, icon)
    print(f"✅ Created {len(category_ids)} categories.")

    # 2. Cards & Benefits
    definitions = get_card_definitions()
    for defi in definitions:
        benefits = []
        for b in defi["benefits"]:
            benefit = dict(b)
            benefit["category_id"] = category_ids[benefit.pop("category")]
            benefits.append(benefit)
        store.add_card(benefits=benefits, **defi["card"])
    print(f"✅ Created {len(definitions)} cards with benefits.")

    # 3. Users & Spending
    today = datetime.now()
    records = 0
    for name, email, income in USERS[:NUM_USERS]:
        user_id = store.add_user(name, email, income)
        for months_ago in range(MONTHS_HISTORY):
            month = (today.month - months_ago - 1) % 12 + 1
            year = today.year - (1 if month > today.month else 0)
            for category, (low, high) in SPEND_RANGES.items():
                for _ in range(RECORDS_PER_MONTH):
                    amount = round(random.uniform(low, high) / RECORDS_PER_MONTH, 2)
                    store.add_spending(user_id, category_ids[category], amount, month, year)
                    records += 1

    print(f"✅ Seeded {records} spending records across {NUM_USERS} users.")


if __name__ == "__main__":
    seed()
