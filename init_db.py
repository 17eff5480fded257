import sys

from studio import create_app, db, bcrypt
from studio.data_processor import load_historic_csv, load_roster_csv
from studio.models import User, Location
from studio.rules import DEFAULT_RULES

# Usage: python init_db.py [historic.csv] [roster.csv]
historic_csv = sys.argv[1] if len(sys.argv) > 1 else None
roster_csv = sys.argv[2] if len(sys.argv) > 2 else None

def main():
    app = create_app()
    with app.app_context():
        db.drop_all()
        db.create_all()

        print("Creating locations...")
        for rule in DEFAULT_RULES.locations:
            location = Location(
                name=rule.name,
                max_parallel_classes=rule.max_parallel_classes,
                blocked_formats=', '.join(rule.blocked_formats),
                is_flagship=rule.is_flagship
            )
            db.session.add(location)

        # Create a default admin user
        print("Creating default admin user...")
        admin_user = User(
            username='admin',
            password=bcrypt.generate_password_hash('admin').decode('utf-8'),
            permissions=1  # Full permissions
        )
        db.session.add(admin_user)
        db.session.commit()

        if roster_csv:
            print(f"Loading roster from {roster_csv}...")
            load_roster_csv(roster_csv)

        if historic_csv:
            print(f"Loading historic classes from {historic_csv}...")
            load_historic_csv(historic_csv)

        print("Database initialised.")

if __name__ == '__main__':
    main()
