"""Demo records loaded into an empty local store."""

from datetime import UTC, datetime

DEFAULT_USER_ID = "default-user"


def initial_contacts() -> list[dict]:
    now = datetime.now(UTC).isoformat()
    return [
        {
            "id": "1",
            "user_id": DEFAULT_USER_ID,
            "name": "João Silva",
            "company": "Tech Innovators",
            "website": "https://techinnovators.com",
            "email": "joao@techinnovators.com",
            "phone": "(11) 98888-7777",
            "status": "Active",
            "commercial_area": "SaaS Enterprise",
            "created_at": now,
            "internal_notes": [
                {
                    "id": "n1",
                    "contact_id": "1",
                    "content": "Strategic client focused on expansion.",
                    "date": "2023-10-15",
                }
            ],
            "interactions": [
                {
                    "id": "i1",
                    "contact_id": "1",
                    "type": "Comment",
                    "content": "First alignment meeting concluded.",
                    "date": "2023-10-15",
                },
                {
                    "id": "i2",
                    "contact_id": "1",
                    "type": "Strategy",
                    "content": "Focus on license expansion for Q4.",
                    "date": "2023-11-01",
                },
            ],
            "financials": [
                {
                    "id": "f1",
                    "contact_id": "1",
                    "service_name": "Monthly Consulting",
                    "value_charged": 5000,
                    "value_paid": 5000,
                    "payment_date": "2023-11-05",
                    "status": "Paid",
                    "created_at": "2023-11-01T00:00:00+00:00",
                }
            ],
            "alerts": [],
        },
        {
            "id": "2",
            "user_id": DEFAULT_USER_ID,
            "name": "Maria Oliveira",
            "company": "Marketing Pro",
            "website": "https://marketingpro.com.br",
            "email": "maria@marketingpro.com.br",
            "phone": "(21) 97777-6666",
            "status": "Prospect",
            "commercial_area": "Digital Agency",
            "created_at": now,
            "internal_notes": [],
            "interactions": [],
            "financials": [],
            "alerts": [],
        },
    ]
