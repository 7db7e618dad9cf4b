#!/usr/bin/env python3
"""Initialize the durable store and bootstrap the admin password"""
import sys
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Add the parent directory to sys.path
sys.path.insert(0, os.path.dirname(__file__))

print("Initializing HobbyGuard store...")
print("-" * 60)

try:
    from app import create_app
    from services.container import get_guard_services
    from services.storage import MemoryStore

    app = create_app()
    print("✓ Flask app created")

    with app.app_context():
        from sqlalchemy import inspect
        from extensions import db

        tables = inspect(db.engine).get_table_names()
        print(f"\nDatabase has {len(tables)} tables:")
        for table in sorted(tables):
            print(f"  ✓ {table}")

        services = get_guard_services()
        # Session store is irrelevant here, only the durable admin secret is touched
        session_manager = services.session_manager(MemoryStore())
        result = session_manager.ensure_admin_password()

        if result.failure:
            print(f"\n❌ Could not create admin password: {result.failure}")
            sys.exit(1)
        if result.created:
            print("\n🔐 Initial admin password (shown only once, store it safely):")
            print(f"    {result.password}")
        else:
            print("\n✓ Admin password already set")

    print("\n" + "=" * 60)
    print("✅ INITIALIZATION COMPLETE!")
    print("=" * 60)
    print("Start the backend with: python app.py")

except ImportError as e:
    print(f"\n❌ Import error: {e}")
    print("Make sure all dependencies are installed:")
    print("  pip install -e .")
    sys.exit(1)

print("-" * 60)
