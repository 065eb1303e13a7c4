"""Seed script to populate a demo entity graph.
Run after initial migration: python seed_data.py

Clients that already exist (matched by name) are left alone along with
everything under them; reward programs, redemption items and consumers are
matched by name or email. The script can be re-run safely.
"""
import sys
import asyncio
import traceback

from cia_api.core.deps import close_facade, get_facade
from cia_api.services.query_facade import QueryFacade

CLIENTS = [
    {"name": "Gourmet Bites Inc.", "industry": "Food & Beverage", "contactPerson": "Alice Wonderland", "email": "alice@gourmetbites.com", "phone": "555-0101-1111", "status": "Active"},
    {"name": "Liquid Refreshments Co.", "industry": "Beverages", "contactPerson": "Bob The Builder", "email": "bob@liquidrefresh.com", "phone": "555-0102-2222", "status": "Active"},
    {"name": "Morning Foods Ltd.", "industry": "CPG", "contactPerson": "Charlie Brown", "email": "charlie@morningfoods.com", "status": "Pending"},
    {"name": "Quick Eats Corp.", "industry": "Frozen Foods", "contactPerson": "Diana Prince", "email": "diana@quickeats.com", "status": "Active"},
    {"name": "Healthy Snacks Co.", "industry": "Health Foods", "contactPerson": "Edward Nigma", "email": "edward@healthysnacks.com", "status": "Inactive"},
]

# client name -> brand names
BRANDS = {
    "Gourmet Bites Inc.": ["Crunchies", "Gourmet Select"],
    "Liquid Refreshments Co.": ["Fizz", "AquaPure"],
    "Morning Foods Ltd.": ["Sunrise Cereal"],
    "Quick Eats Corp.": ["Freezer Feast"],
    "Healthy Snacks Co.": ["Vital Bar"],
}

# (title, client name, brand names, extra fields)
CAMPAIGNS = [
    ("Spring Snack Launch", "Gourmet Bites Inc.", ["Crunchies"], {"productType": "Snacks", "status": "active", "startDate": "2024-03-01T00:00:00Z", "endDate": "2024-04-30T00:00:00Z", "targetAudience": "Millennials, Urban Dwellers", "description": "Launch campaign for new spring snack line."}),
    ("Beverage Taste Test Q2", "Liquid Refreshments Co.", ["Fizz", "AquaPure"], {"productType": "Beverages", "status": "completed", "startDate": "2024-04-15T00:00:00Z", "endDate": "2024-05-15T00:00:00Z", "targetAudience": "Gen Z, College Students", "description": "Quarterly taste testing for new beverage concepts."}),
    ("New Cereal Concept", "Morning Foods Ltd.", ["Sunrise Cereal"], {"productType": "Cereal", "status": "planning", "startDate": "2024-06-01T00:00:00Z", "endDate": "2024-07-01T00:00:00Z", "targetAudience": "Families with Kids"}),
    ("Frozen Meals Feedback", "Quick Eats Corp.", ["Freezer Feast"], {"productType": "Frozen Meals", "status": "active", "startDate": "2024-05-10T00:00:00Z", "endDate": "2024-06-10T00:00:00Z", "targetAudience": "Busy Professionals"}),
    ("Healthy Bar Evaluation", "Healthy Snacks Co.", ["Vital Bar"], {"productType": "Snacks", "status": "paused", "startDate": "2024-07-15T00:00:00Z", "endDate": "2024-08-15T00:00:00Z", "targetAudience": "Fitness Enthusiasts"}),
]

REWARD_PROGRAMS = [
    {"name": "Standard Points Program", "type": "Points", "status": "Active", "description": "Earn points for each survey completed.", "config": {"pointsPerSurvey": 10}},
    {"name": "Gift Card Raffle Q3", "type": "Raffle", "status": "Active", "description": "Get a raffle entry for a chance to win gift cards.", "config": {"entryPerSurvey": 1}},
    {"name": "Early Bird Bonus", "type": "Bonus", "status": "Inactive", "description": "Special bonus for the first 100 respondents.", "config": {"bonusAmount": "$5 Coupon", "condition": "First 100 responses"}},
]

# (name, campaign title, brand name, reward program name, extra fields)
SURVEYS = [
    ("Initial Concept Test", "Spring Snack Launch", "Crunchies", "Standard Points Program", {"status": "active", "type": "Concept Test", "questions": [
        {"text": "How appealing is this snack concept?", "type": "rating"},
        {"text": "Which flavor profile sounds most interesting?", "type": "multiple-choice", "options": ["Spicy Mango", "Garlic Parmesan", "Sweet Chili"]},
        {"text": "Any suggestions for improvement?", "type": "text"},
    ]}),
    ("Packaging Preference", "Spring Snack Launch", "Crunchies", None, {"status": "completed", "type": "Preference Test", "questions": [
        {"text": "Which packaging design do you prefer?", "type": "multiple-choice", "options": ["Design A", "Design B", "Design C"]},
    ]}),
    ("Flavor Preference Ranking", "Beverage Taste Test Q2", "Fizz", "Gift Card Raffle Q3", {"status": "completed", "type": "Ranking", "questions": [
        {"text": "Rank these potential new flavors (1=most preferred)", "type": "ranking", "options": ["Berry Blast", "Citrus Zing", "Tropical Twist"]},
    ]}),
    ("Brand Perception Survey", "Beverage Taste Test Q2", "AquaPure", None, {"status": "completed", "type": "Brand Study"}),
    ("Cereal Box Design Feedback", "New Cereal Concept", "Sunrise Cereal", None, {"status": "draft", "type": "Design Feedback"}),
]

REDEMPTION_ITEMS = [
    {"name": "$5 Amazon Gift Card", "type": "Gift Card", "pointsCost": 50, "stock": 100, "isActive": True, "description": "Redeem for a $5 Amazon gift card."},
    {"name": "$10 Starbucks Card", "type": "Gift Card", "pointsCost": 100, "stock": 50, "isActive": True, "imageUrl": "https://picsum.photos/seed/starbucks/64"},
    {"name": "20% Off Coupon - GourmetBites", "type": "Coupon", "pointsCost": 25, "isActive": True, "description": "Get 20% off your next purchase at Gourmet Bites."},
    {"name": "Branded Water Bottle", "type": "Merchandise", "pointsCost": 150, "stock": 20, "isActive": False, "imageUrl": "https://picsum.photos/seed/waterbottle/64"},
]

CONSUMERS = [
    {"name": "Alice Wonderland", "email": "alice.consumer@example.com", "segment": "Early Adopter", "notes": "Very active in providing feedback, interested in organic products."},
    {"name": "Bob The Builder", "email": "bob.consumer@example.com", "segment": "Value Seeker", "notes": "Prefers discounts and bulk offers."},
    {"name": "Charlie Brown", "email": "charlie.consumer@example.com", "segment": "Brand Loyalist", "notes": "Loyal to Morning Foods Ltd. products."},
]


async def seed(facade: QueryFacade) -> dict[str, int]:
    counts = {"clients": 0, "brands": 0, "campaigns": 0, "surveys": 0}

    existing = {c["name"] for c in await facade.list_clients()}
    client_ids: dict[str, str] = {}
    brand_ids: dict[str, str] = {}
    for client in CLIENTS:
        if client["name"] in existing:
            continue
        client_ids[client["name"]] = await facade.add_client(client)
        counts["clients"] += 1
        for brand_name in BRANDS.get(client["name"], []):
            brand_ids[brand_name] = await facade.add_brand(
                {"name": brand_name, "clientId": client_ids[client["name"]]}
            )
            counts["brands"] += 1

    # Shared records are matched too (consumers by email) so a partial
    # re-run does not duplicate them.
    program_ids = {p["name"]: p["id"] for p in await facade.list_reward_programs()}
    for program in REWARD_PROGRAMS:
        if program["name"] not in program_ids:
            program_ids[program["name"]] = await facade.add_reward_program(program)

    campaign_ids: dict[str, str] = {}
    for title, client_name, brand_names, extra in CAMPAIGNS:
        if client_name not in client_ids:
            continue
        campaign_ids[title] = await facade.add_campaign({
            "title": title,
            "clientId": client_ids[client_name],
            "brandIds": [brand_ids[b] for b in brand_names],
            **extra,
        })
        counts["campaigns"] += 1

    for name, campaign_title, brand_name, program_name, extra in SURVEYS:
        if campaign_title not in campaign_ids:
            continue
        await facade.add_survey({
            "name": name,
            "campaignId": campaign_ids[campaign_title],
            "brandId": brand_ids[brand_name],
            "rewardProgramId": program_ids.get(program_name) if program_name else None,
            **extra,
        })
        counts["surveys"] += 1

    item_names = {i["name"] for i in await facade.list_redemption_items()}
    for item in REDEMPTION_ITEMS:
        if item["name"] not in item_names:
            await facade.add_redemption_item(item)
    consumer_emails = {c.get("email") for c in await facade.list_consumers()}
    for consumer in CONSUMERS:
        if consumer["email"] not in consumer_emails:
            await facade.add_consumer(consumer)
    return counts


async def main():
    try:
        counts = await seed(get_facade())
    finally:
        await close_facade()
    print("Seed data applied successfully!", flush=True)
    for name, count in counts.items():
        print(f"  - {count} {name}", flush=True)


if __name__ == "__main__":
    print("seed_data.py: starting...", flush=True)
    try:
        asyncio.run(main())
    except Exception as e:
        print(f"seed_data.py FAILED: {e}", flush=True)
        traceback.print_exc()
        sys.exit(1)
