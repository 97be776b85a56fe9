#!/usr/bin/env python3
"""
Intern Training Tracker — demo seed.

Creates demo users (admin, tutor, two interns), a few rotations with
procedures and requirements, and some log entries in every review state.
Existing rows are reused, so running the script twice is harmless.

Usage:
    python scripts/seed_demo.py              # add to the current DB
    python scripts/seed_demo.py --reset      # drop_all + create_all first
"""

import argparse
from datetime import date, timedelta

from intern_tracker import create_app
from intern_tracker.models import db
from intern_tracker.models.training import (
    ROLE_ADMIN,
    ROLE_INTERN,
    ROLE_TUTOR,
    STATE_ACTIVE,
    STATE_NOT_STARTED,
    STATUS_APPROVED,
    STATUS_PENDING,
    STATUS_REJECTED,
    LogEntry,
    Procedure,
    Requirement,
    Rotation,
    User,
    Verification,
)

USERS = [
    ("Admin Ada", "admin@demo.local", ROLE_ADMIN),
    ("Tutor Tamar", "tutor@demo.local", ROLE_TUTOR),
    ("Intern Itai", "intern@demo.local", ROLE_INTERN),
    ("Intern Noa", "intern2@demo.local", ROLE_INTERN),
]

# rotation -> (description, state, [(procedure, description, min_count)])
ROTATIONS = {
    "ICU": ("Intensive Care Unit rotation", STATE_ACTIVE, [
        ("Arterial Line", "Radial/femoral arterial cannulation", 5),
        ("Central Line", "Internal jugular / subclavian CVC", 3),
        ("Intubation", "Endotracheal intubation", 4),
    ]),
    "Emergency Medicine": ("Emergency department rotation", STATE_ACTIVE, [
        ("Suturing", "Simple laceration repair", 10),
        ("Lumbar Puncture", "Diagnostic LP", 2),
    ]),
    "Anesthesia": ("Operating room anesthesia rotation", STATE_NOT_STARTED, [
        ("Spinal Anesthesia", "Single-shot spinal", 5),
        ("Nerve Block", "Ultrasound-guided peripheral block", 0),
    ]),
}


def seed_users():
    users = {}
    for name, email, role in USERS:
        user = User.query.filter_by(email=email).first()
        if user is None:
            user = User(name=name, email=email, role=role)
            db.session.add(user)
        users[email] = user
    db.session.flush()
    print(f"  ✅ {len(users)} users")
    return users


def seed_rotations():
    procedures = {}
    for rot_name, (description, state, procs) in ROTATIONS.items():
        rotation = Rotation.query.filter_by(name=rot_name).first()
        if rotation is None:
            rotation = Rotation(name=rot_name, description=description, is_active=True, state=state)
            db.session.add(rotation)
            db.session.flush()

        for proc_name, proc_desc, min_count in procs:
            procedure = Procedure.query.filter_by(rotation_id=rotation.id, name=proc_name).first()
            if procedure is None:
                procedure = Procedure(rotation_id=rotation.id, name=proc_name, description=proc_desc)
                db.session.add(procedure)
                db.session.flush()
            procedures[proc_name] = procedure

            # 0 means "loggable but not required"
            if min_count < 1:
                continue
            requirement = Requirement.query.filter_by(
                rotation_id=rotation.id, procedure_id=procedure.id
            ).first()
            if requirement is None:
                db.session.add(Requirement(
                    rotation_id=rotation.id, procedure_id=procedure.id, min_count=min_count,
                ))
    db.session.flush()
    print(f"  ✅ {len(ROTATIONS)} rotations, {len(procedures)} procedures")
    return procedures


def seed_logs(users, procedures):
    intern = users["intern@demo.local"]
    tutor = users["tutor@demo.local"]
    if LogEntry.query.filter_by(intern_id=intern.id).count():
        print("  ⏭  logs already present")
        return

    today = date.today()
    entries = [
        ("Arterial Line", 3, 20, STATUS_APPROVED, None),
        ("Arterial Line", 2, 6, STATUS_PENDING, None),
        ("Central Line", 1, 15, STATUS_APPROVED, None),
        ("Intubation", 2, 4, STATUS_REJECTED, "Supervisor signature missing"),
        ("Suturing", 12, 10, STATUS_APPROVED, None),
        ("Lumbar Puncture", 1, 1, STATUS_PENDING, None),
    ]
    for proc_name, count, days_ago, status, reason in entries:
        reviewed = status != STATUS_PENDING
        db.session.add(LogEntry(
            intern_id=intern.id,
            procedure_id=procedures[proc_name].id,
            date=today - timedelta(days=days_ago),
            count=count,
            notes=f"Demo entry: {proc_name.lower()}",
            verification=Verification(
                status=status,
                verifier_id=tutor.id if reviewed else None,
                reason=reason,
                version=2 if reviewed else 1,
            ),
        ))
    db.session.flush()
    print(f"  ✅ {len(entries)} log entries for {intern.name}")


def main():
    parser = argparse.ArgumentParser(description="Seed intern tracker demo data")
    parser.add_argument("--reset", action="store_true", help="Drop and recreate all tables")
    args = parser.parse_args()

    app = create_app()
    with app.app_context():
        if args.reset:
            print("\n⚠️  Resetting DB (drop_all + create_all)...")
            db.drop_all()
            db.create_all()
            print("   ✅ DB recreated\n")

        print("=" * 60)
        print("🩺 Loading intern tracker demo data...")
        print("=" * 60)

        users = seed_users()
        procedures = seed_rotations()
        seed_logs(users, procedures)
        db.session.commit()

        cache = app.extensions.get("reference_cache")
        if cache is not None:
            cache.clear()

        print()
        print("   🔗 Try: curl -H 'X-User-Id: <id>' http://localhost:5000/api/v1/progress")
        print()


if __name__ == "__main__":
    main()
