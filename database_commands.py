#!/usr/bin/env python3
"""
Database and Report Commands for the chauffeur back office

Usage:
    python database_commands.py --help
    python database_commands.py init-db
    python database_commands.py status
    python database_commands.py seed-demo
    python database_commands.py export-jobs --status completed --output jobs.csv
    python database_commands.py summary --period monthly
"""

import os
import sys
import random
import argparse
import logging
from datetime import timedelta

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

DEMO_DRIVERS = ['James Mitchell', 'Sarah Thompson', 'David Chen', 'Emma Wilson', 'Robert Davies']
DEMO_VEHICLES = [
    ('Rolls-Royce Phantom', 'luxury'),
    ('Range Rover Autobiography', 'suv'),
    ('Mercedes S-Class', 'executive'),
    ('BMW 7 Series', 'executive'),
    ('Bentley Flying Spur', 'luxury'),
]
# (name, lat, lng)
DEMO_PLACES = [
    ('Heathrow Terminal 5', 51.4723, -0.4877),
    ('The Savoy, Strand', 51.5104, -0.1203),
    ('Canary Wharf', 51.5054, -0.0235),
    ('Gatwick South Terminal', 51.1565, -0.1611),
    ('Ascot Racecourse', 51.4139, -0.6757),
    ('Birmingham New Street', 52.4778, -1.8984),
]
DEMO_SERVICES = ['airport_transfer', 'corporate', 'events', 'chauffeur', 'close_protection']
DEMO_STATUSES = ['completed', 'completed', 'completed', 'confirmed', 'new', 'cancelled', 'in_progress']


def setup_app_context():
    """Setup Flask application context for database operations."""
    if not os.environ.get('SESSION_SECRET'):
        os.environ['SESSION_SECRET'] = 'cli_temp_secret_not_for_production'

    from app import create_app
    app = create_app()
    return app.app_context()


def seed_demo_data(session, now, booking_count=60, seed=7):
    """
    Populate drivers, vehicles, testimonials and bookings spread over the
    last twelve weeks.

    Returns:
        dict: number of rows created per table
    """
    from models import Driver, Vehicle, Booking, Testimonial

    rng = random.Random(seed)

    drivers = [Driver(name=name, is_active=True, is_available=index != 4)
               for index, name in enumerate(DEMO_DRIVERS)]
    vehicles = [Vehicle(name=name, category=category, is_active=True,
                        service_status='in_service' if index == 1 else 'active')
                for index, (name, category) in enumerate(DEMO_VEHICLES)]
    session.add_all(drivers + vehicles)
    session.flush()

    bookings = []
    for index in range(booking_count):
        created_at = now - timedelta(days=rng.randint(0, 83), hours=rng.randint(0, 23))
        pickup, dropoff = rng.sample(DEMO_PLACES, 2)
        status = rng.choice(DEMO_STATUSES)
        assigned = status != 'new'
        bookings.append(Booking(
            customer_name=f"Client {index % 40 + 1}",
            customer_email=f"client{index % 40 + 1}@example.com",
            pickup_location=pickup[0],
            dropoff_location=dropoff[0],
            pickup_lat=pickup[1], pickup_lng=pickup[2],
            dropoff_lat=dropoff[1], dropoff_lng=dropoff[2],
            pickup_date=(created_at + timedelta(days=rng.randint(1, 14))).date(),
            pickup_time=f"{rng.randint(6, 22):02d}:{rng.choice(['00', '15', '30', '45'])}",
            status=status,
            service_type=rng.choice(DEMO_SERVICES),
            total_price=rng.choice([95, 145, 180, 240, 320, 450, 780]),
            distance_miles=round(rng.uniform(8, 120), 1),
            wait_time_hours=rng.choice([None, None, 0.5, 1.0]),
            driver_id=rng.choice(drivers).id if assigned else None,
            vehicle_id=rng.choice(vehicles).id if assigned else None,
            created_at=created_at,
        ))
    session.add_all(bookings)

    testimonials = [
        Testimonial(customer_name=f"Client {n}", content="Impeccable service from start to finish.",
                    rating=rating, is_active=True)
        for n, rating in enumerate([5, 5, 4, 5, 5, 4, 5, None], start=1)
    ]
    session.add_all(testimonials)
    session.commit()

    return {
        'drivers': len(drivers),
        'vehicles': len(vehicles),
        'bookings': len(bookings),
        'testimonials': len(testimonials),
    }


def cmd_init_db(args):
    """Create any missing reporting tables."""
    from app import db

    with setup_app_context():
        db.create_all()
        print("✅ Database tables created")


def cmd_status(args):
    """Display row counts for the reporting tables."""
    from models import Driver, Vehicle, Booking, Testimonial

    with setup_app_context():
        print("=" * 60)
        print("DATABASE STATUS REPORT")
        print("=" * 60)
        for label, model in (('bookings', Booking), ('drivers', Driver),
                             ('vehicles', Vehicle), ('testimonials', Testimonial)):
            print(f"  {label}: {model.query.count()} records")


def cmd_seed_demo(args):
    """Insert demo rows for local development."""
    from app import db
    from models import Booking
    from timezone_utils import get_uk_time_naive

    with setup_app_context():
        if Booking.query.first() and not args.force:
            print("Bookings already exist; use --force to add demo data anyway")
            sys.exit(1)
        created = seed_demo_data(db.session, get_uk_time_naive(), booking_count=args.count)
        for table, count in created.items():
            print(f"  {table}: {count} created")


def cmd_export_jobs(args):
    """Write the job report CSV using the same filters as the admin table."""
    from services.export_service import ViewState
    from services.reporting_service import ReportingService

    view_state = ViewState(
        search=args.search or '',
        service_type=args.service_type or 'all',
        status=args.status or 'all',
        sort_field=args.sort,
        sort_order=args.order,
    )
    with setup_app_context():
        content, filename = ReportingService().export_jobs(view_state)

    output = args.output or filename
    with open(output, 'w', encoding='utf-8', newline='') as f:
        f.write(content)
    print(f"✅ Exported job report to {output}")


def cmd_summary(args):
    """Print the daily / weekly / monthly summary figures."""
    from services.reporting_service import ReportingService

    with setup_app_context():
        report = ReportingService().get_period_report(args.period)

    print(f"{args.period.title()} report ({report['window']['start']} to {report['window']['end']})")
    print(f"  Total jobs:          {report['total_jobs']}")
    print(f"  Completed jobs:      {report['completed_jobs']}")
    print(f"  Revenue:             £{report['revenue']:.2f}")
    print(f"  Total miles:         {report['total_miles']:.1f}")
    print(f"  Avg job value:       £{report['avg_job_value']:.2f}")
    print(f"  Driver utilisation:  {report['driver_utilisation']:.1f}%")
    print(f"  Vehicle utilisation: {report['vehicle_utilisation']:.1f}%")


def main():
    parser = argparse.ArgumentParser(description='Chauffeur back office database and report commands')
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    subparsers.add_parser('init-db', help='Create database tables')
    subparsers.add_parser('status', help='Display table row counts')

    seed_parser = subparsers.add_parser('seed-demo', help='Insert demo data')
    seed_parser.add_argument('--count', type=int, default=60, help='Number of bookings to create')
    seed_parser.add_argument('--force', action='store_true', help='Seed even if bookings exist')

    export_parser = subparsers.add_parser('export-jobs', help='Export the job report as CSV')
    export_parser.add_argument('--output', help='Output file (defaults to jobs-report-<date>.csv)')
    export_parser.add_argument('--search', help='Search job id, customer or location')
    export_parser.add_argument('--service-type', help='Only this service type')
    export_parser.add_argument('--status', help='Only this status')
    export_parser.add_argument('--sort', default='pickup_date',
                               choices=['pickup_date', 'customer_name', 'total_price', 'distance_miles'])
    export_parser.add_argument('--order', default='desc', choices=['asc', 'desc'])

    summary_parser = subparsers.add_parser('summary', help='Print a period summary')
    summary_parser.add_argument('--period', default='weekly', choices=['daily', 'weekly', 'monthly'])

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        if args.command == 'init-db':
            cmd_init_db(args)
        elif args.command == 'status':
            cmd_status(args)
        elif args.command == 'seed-demo':
            cmd_seed_demo(args)
        elif args.command == 'export-jobs':
            cmd_export_jobs(args)
        elif args.command == 'summary':
            cmd_summary(args)
        else:
            print(f"Unknown command: {args.command}")
            sys.exit(1)

    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        sys.exit(1)
    except Exception as e:
        logger.exception("Unexpected error occurred")
        print(f"❌ Unexpected error: {str(e)}")
        sys.exit(1)

if __name__ == "__main__":
    main()
