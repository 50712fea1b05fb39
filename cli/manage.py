# cli/manage.py
# Local CLI for license and order maintenance (uses DB directly)
import argparse
import logging

from laundrypos.config import configure_logging
from laundrypos.database import SessionLocal, engine
from laundrypos.enums import PackageKind
from laundrypos.errors import LaundryPOSError
from laundrypos.models import Base
from laundrypos.services import entitlement, orders

logger = logging.getLogger("cli.manage")


def grant(tenant_id: str, package: str):
    db = SessionLocal()
    try:
        lic = entitlement.grant_license(db, tenant_id, PackageKind(package))
        print("License granted to:", tenant_id)
        print("Valid until:", lic.end_at)
    finally:
        db.close()


def approve(payment_id: int):
    db = SessionLocal()
    try:
        lic = entitlement.approve_payment(db, payment_id)
        print(f"Payment {payment_id} approved, {lic.tenant_id} licensed {lic.start_at} -> {lic.end_at}")
    finally:
        db.close()


def reject(payment_id: int):
    db = SessionLocal()
    try:
        entitlement.reject_payment(db, payment_id)
        print("Payment rejected:", payment_id)
    finally:
        db.close()


def show_status(tenant_id: str):
    db = SessionLocal()
    try:
        verdict = entitlement.evaluate(db, tenant_id)
        lic = entitlement.get_license_info(db, tenant_id)
        print("Verdict:", verdict.value)
        if lic:
            print(f"Package: {lic.package}, valid {lic.start_at} -> {lic.end_at} (+{lic.grace_days} days grace)")
    finally:
        db.close()


def repair(tenant_id: str):
    db = SessionLocal()
    try:
        repaired = orders.repair_history(db, tenant_id)
        print(f"Repaired {len(repaired)} order(s)")
        for code in repaired:
            print(" ", code)
    finally:
        db.close()


def main(argv=None):
    parser = argparse.ArgumentParser()
    parser.add_argument("action", choices=["grant", "approve", "reject", "status", "repair-history"])
    parser.add_argument("--tenant", help="Tenant id (grant/status/repair-history)")
    parser.add_argument("--package", default="monthly", choices=[p.value for p in PackageKind])
    parser.add_argument("--payment", type=int, help="Payment id (approve/reject)")

    args = parser.parse_args(argv)
    configure_logging()
    Base.metadata.create_all(bind=engine)

    try:
        if args.action in ("approve", "reject"):
            if args.payment is None:
                print("--payment required for", args.action)
                return 2
            if args.action == "approve":
                approve(args.payment)
            else:
                reject(args.payment)
            return 0
        if not args.tenant:
            print("--tenant required for", args.action)
            return 2
        if args.action == "grant":
            grant(args.tenant, args.package)
        elif args.action == "status":
            show_status(args.tenant)
        else:
            repair(args.tenant)
    except LaundryPOSError as exc:
        logger.error("%s", exc.detail)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
