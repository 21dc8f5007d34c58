"""
Database seeding for the Service Call Manager.
Creates a handful of demo service calls if the database is empty.
"""

import logging
from datetime import datetime, timedelta

from database.connection import get_db_session
from database.models import ServiceCall

logger = logging.getLogger(__name__)


def _sample_calls(now):
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return [
        {
            'customerName': 'John Smith',
            'phone': '(555) 123-4567',
            'address': '123 Main St, Downtown, NY 10001',
            'problemDesc': 'Refrigerator not cooling properly. Temperature seems inconsistent.',
            'callType': 'Warranty',
            'scheduledAt': today + timedelta(hours=10),
        },
        {
            'customerName': 'Mary Johnson',
            'phone': '(555) 987-6543',
            'address': '456 Oak Ave, Midtown, NY 10002',
            'problemDesc': 'Washing machine making loud noise during spin cycle.',
            'callType': 'Landlord',
            'landlordName': 'Oak Avenue Properties',
            'scheduledAt': today + timedelta(hours=14, minutes=30),
        },
        {
            'customerName': 'Bob Wilson',
            'phone': '(555) 555-0123',
            'address': '789 Pine St, Uptown, NY 10003',
            'problemDesc': 'Dishwasher not draining properly. Water pools at bottom.',
            'callType': 'Extra',
        },
        {
            'customerName': 'Alice Brown',
            'phone': '(555) 246-8101',
            'address': '321 Elm Dr, Eastside, NY 10004',
            'problemDesc': 'Oven temperature not accurate. Overcooking food.',
            'callType': 'Warranty',
            'scheduledAt': today + timedelta(days=1, hours=9),
        },
        {
            'customerName': 'Charlie Davis',
            'phone': '(555) 369-2580',
            'address': '654 Maple Ln, Westside, NY 10005',
            'problemDesc': 'Microwave turntable not rotating. Heating unevenly.',
            'callType': 'Landlord',
            'landlordName': 'Westside Rentals',
        },
    ]


def seed_sample_calls(session, now=None):
    """Insert demo calls unless the table already has rows. Returns the number created."""
    from services.service_call_repository import ServiceCallRepository

    if session.query(ServiceCall).first():
        logger.info("Service calls already exist, skipping sample data")
        return 0

    repo = ServiceCallRepository(session)
    created = [repo.create(data) for data in _sample_calls(now or datetime.utcnow())]

    # Spread a couple of calls across other statuses for demo purposes
    if len(created) >= 3:
        repo.update(created[0]['id'], {'status': 'InProgress'})
        repo.update(created[2]['id'], {'status': 'Completed'})

    logger.info(f"Created {len(created)} sample service calls")
    return len(created)


def run_seed():
    """Run the seed against the configured database."""
    with get_db_session() as session:
        return seed_sample_calls(session)


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    from database.connection import init_db
    init_db()
    run_seed()
