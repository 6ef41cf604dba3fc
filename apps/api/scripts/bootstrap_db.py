"""Create database schema and seed sample users and leads for development."""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone

from crm.core.config import settings
from crm.core.security import hash_password
from crm.db.session import SessionLocal, create_schema
from crm.models import Lead, LeadStage, LeadType, ParkingType, User, UserRole
from crm.services.leads import build_lead_id
from crm.services.scoring import compute_lead_score

USERS = [
	{
		"id": "user-admin",
		"name": settings.seed_admin_name,
		"email": settings.seed_admin_email,
		"password": settings.seed_admin_password,
		"role": UserRole.ADMIN,
		"sales_target": 0,
	},
	{
		"id": "user-priya",
		"name": "Priya Nair",
		"email": "priya@acs.local",
		"password": "sales123",
		"role": UserRole.SALES,
		"sales_target": 3,
	},
	{
		"id": "user-rohan",
		"name": "Rohan Mehta",
		"email": "rohan@acs.local",
		"password": "sales123",
		"role": UserRole.SALES,
		"sales_target": 2,
	},
]


LEADS = [
	{
		"id": "lead-0000-seaview",
		"lead_type": LeadType.CHS,
		"name": "Seaview CHS Committee",
		"phone": "+91-98200-11111",
		"email": "secretary@seaviewchs.example.com",
		"area": "Andheri West",
		"locality": "Lokhandwala",
		"property_size_flats": 180,
		"parking_type": ParkingType.BASEMENT,
		"current_ev_count": 9,
		"charger_interest": ["7.4", "22"],
		"decision_maker_known": True,
		"stage": LeadStage.QUALIFIED,
		"owner_id": "user-priya",
	},
	{
		"id": "lead-0000-orchid",
		"lead_type": LeadType.HOTEL,
		"name": "Orchid Suites",
		"phone": "+91-98200-22222",
		"email": None,
		"area": "Powai",
		"locality": "Hiranandani Gardens",
		"property_size_flats": None,
		"parking_type": ParkingType.OPEN,
		"current_ev_count": 2,
		"charger_interest": ["22"],
		"decision_maker_known": False,
		"stage": LeadStage.NEW,
		"owner_id": "user-rohan",
	},
	{
		"id": "lead-0000-techpark",
		"lead_type": LeadType.CORPORATE,
		"name": "Northgate Tech Park",
		"phone": "+91-98200-33333",
		"email": "facilities@northgate.example.com",
		"area": "Thane",
		"locality": "Ghodbunder Road",
		"property_size_flats": None,
		"parking_type": ParkingType.MIXED,
		"current_ev_count": 14,
		"charger_interest": [],
		"decision_maker_known": True,
		"stage": LeadStage.MEETING_BOOKED,
		"owner_id": "user-priya",
	},
]


async def seed_users() -> None:
	"""Insert demo admin and sales accounts."""

	async with SessionLocal() as session:
		async with session.begin():
			for user_data in USERS:
				user = await session.get(User, user_data["id"])
				if user is None:
					user = User(
						id=user_data["id"],
						name=user_data["name"],
						email=user_data["email"],
						password_hash=hash_password(user_data["password"]),
						role=user_data["role"],
						is_active=True,
						sales_target=user_data["sales_target"],
						sales_achieved=0,
						incentive_eligible=False,
					)
					session.add(user)
				else:
					user.name = user_data["name"]
					user.role = user_data["role"]
					user.sales_target = user_data["sales_target"]
					session.add(user)


async def seed_leads() -> None:
	"""Insert demo leads spread across the pipeline."""

	async with SessionLocal() as session:
		async with session.begin():
			for lead_data in LEADS:
				lead = await session.get(Lead, lead_data["id"])
				if lead is None:
					now = datetime.now(timezone.utc)
					lead = Lead(**lead_data, created_at=now, updated_at=now)
					lead.lead_id = build_lead_id(now, lead.id)
				else:
					for field, value in lead_data.items():
						setattr(lead, field, value)
				lead.lead_score = compute_lead_score(lead)
				session.add(lead)


async def main() -> None:
	await create_schema()
	await seed_users()
	await seed_leads()
	print("Database schema ensured and demo data seeded.")


if __name__ == "__main__":
	asyncio.run(main())
