#!/usr/bin/env python
"""Idempotent seed script for the permission catalogue, system roles and users.

Usage:
    python backend/scripts/seed.py                          # seed normally
    python backend/scripts/seed.py --with-samples           # plus sample catalogue, customers, coupons
    python backend/scripts/seed.py --create-admin a@b.com   # ensure a SUPER_ADMIN account
    python backend/scripts/seed.py --dry-run --show-roles   # run logic, print roles, then rollback
"""
from __future__ import annotations
import os, sys, argparse, textwrap
from datetime import datetime
from sqlalchemy import select

# Allow running from repo root or from backend/
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from shopadmin import create_app, get_db  # noqa: E402
from shopadmin.models.authz import Base, Permission, Role, RolePermission, User  # noqa: E402
from shopadmin.models.catalog import Category, Brand  # noqa: E402
from shopadmin.models.product import Product  # noqa: E402
from shopadmin.models.customer import Customer  # noqa: E402
from shopadmin.models.marketing import Coupon  # noqa: E402
from shopadmin.constants.permissions import (  # noqa: E402
    RESOURCE_ACTIONS, ROLES, ROLE_DISPLAY_NAMES, SUPER_ADMIN, ADMIN, MANAGER, STAFF,
)
from shopadmin.services.policy import effective_permissions, sync_system_role  # noqa: E402

DEFAULT_USERS = [
    ('ผู้ดูแลระบบ', 'admin@example.com', ADMIN),
    ('ผู้จัดการ', 'manager@example.com', MANAGER),
    ('พนักงาน', 'staff@example.com', STAFF),
]


def ensure_permissions(session):
    existing = {p.code for p in session.execute(select(Permission)).scalars().all()}
    created = 0
    for resource, actions in RESOURCE_ACTIONS.items():
        for act in actions:
            code = f"{resource}:{act}"
            if code not in existing:
                session.add(Permission(code=code, resource=resource, action=act, description=f"{act} {resource.lower()}"))
                created += 1
    session.flush()
    return created


def ensure_roles(session):
    existing_roles = {r.name: r for r in session.execute(select(Role)).scalars().all()}
    created = 0
    for role_name in ROLES:
        if role_name not in existing_roles:
            role = Role(name=role_name, display_name=ROLE_DISPLAY_NAMES[role_name], is_system=True, is_active=True)
            session.add(role)
            existing_roles[role_name] = role
            created += 1
    session.flush()

    perms_map = {p.code: p for p in session.execute(select(Permission)).scalars().all()}
    for role_name in ROLES:
        role = existing_roles[role_name]
        desired = set(effective_permissions(role_name))
        current = {rp.permission.code for rp in role.permissions}
        for code in sorted(desired - current):
            if code not in perms_map:
                print(f"[WARN] Missing permission referenced by role {role_name}: {code}")
                continue
            role.permissions.append(RolePermission(permission=perms_map[code]))
    session.flush()
    return created


def ensure_user(session, name: str, email: str, role: str, password: str):
    user = session.execute(select(User).where(User.email==email)).scalar_one_or_none()
    if user:
        return user, False
    user = User(name=name, email=email, password_hash='', role=role, status=User.STATUS_ACTIVE)
    user.set_password(password)
    session.add(user)
    session.flush()
    sync_system_role(session, user)
    return user, True


def ensure_default_users(session):
    password = os.getenv('SEED_USER_PASSWORD', 'admin123')
    created = 0
    for name, email, role in DEFAULT_USERS:
        _, was_created = ensure_user(session, name, email, role, password)
        created += int(was_created)
    return created


def ensure_admin(session, email: str):
    password = os.getenv('SEED_ADMIN_PASSWORD', 'ChangeMe123!')
    user, created = ensure_user(session, 'Super Admin', email.strip().lower(), SUPER_ADMIN, password)
    if created:
        print(f"[INFO] Created SUPER_ADMIN {user.email} with temporary password.")
    elif user.role != SUPER_ADMIN:
        print(f"[WARN] {user.email} exists with role {user.role}; left unchanged")
    return user


def _get_or_add(session, model, lookup: dict, **fields):
    row = session.execute(select(model).filter_by(**lookup)).scalar_one_or_none()
    if row is None:
        row = model(**lookup, **fields)
        session.add(row)
        session.flush()
    return row


def ensure_samples(session):
    clothing = _get_or_add(session, Category, {'slug': 'clothing'}, name='เสื้อผ้า', description='เสื้อผ้าและแฟชั่น')
    electronics = _get_or_add(session, Category, {'slug': 'electronics'}, name='อิเล็กทรอนิกส์', description='อุปกรณ์อิเล็กทรอนิกส์')
    home = _get_or_add(session, Category, {'slug': 'home'}, name='ของใช้ในบ้าน', description='ของใช้ในบ้านและการตกแต่ง')
    samsung = _get_or_add(session, Brand, {'slug': 'samsung'}, name='Samsung', website='https://samsung.com')
    nike = _get_or_add(session, Brand, {'slug': 'nike'}, name='Nike', website='https://nike.com')
    ikea = _get_or_add(session, Brand, {'slug': 'ikea'}, name='IKEA', website='https://ikea.com')
    products = [
        ('SAM-S24-001', 'Galaxy S24', 'galaxy-s24', 29900, 20000, 32900, 50, electronics, samsung),
        ('NIK-AM270-001', 'Air Max 270', 'air-max-270', 4500, 3000, 5500, 30, clothing, nike),
        ('IKE-HEM-001', 'HEMNES โต๊ะทำงาน', 'hemnes-desk', 3990, 2500, 4990, 15, home, ikea),
    ]
    for sku, name, slug, price, cost, compare, qty, category, brand in products:
        _get_or_add(
            session, Product, {'sku': sku},
            name=name, slug=slug, price=price, cost_price=cost, compare_price=compare,
            quantity=qty, track_quantity=True, status=Product.STATUS_ACTIVE,
            category_id=category.id, brand_id=brand.id,
        )
    _get_or_add(session, Customer, {'email': 'john@example.com'}, first_name='John', last_name='Doe', phone='081-234-5678', segment='REGULAR')
    _get_or_add(session, Customer, {'email': 'jane@example.com'}, first_name='Jane', last_name='Smith', phone='082-345-6789', segment='VIP')
    _get_or_add(
        session, Coupon, {'code': 'WELCOME10'},
        name='ส่วนลดต้อนรับ', description='ส่วนลด 10% สำหรับสมาชิกใหม่', type=Coupon.TYPE_PERCENTAGE,
        value=10, maximum_discount=1000, usage_limit=100, usage_count=0, status=Coupon.STATUS_ACTIVE,
        starts_at=datetime(2024, 1, 1),
    )
    _get_or_add(
        session, Coupon, {'code': 'SAVE500'},
        name='ส่วนลด 500 บาท', description='ส่วนลดเงินสด 500 บาท', type=Coupon.TYPE_FIXED,
        value=500, minimum_amount=5000, usage_limit=50, usage_count=0, status=Coupon.STATUS_ACTIVE,
        starts_at=datetime(2024, 1, 1),
    )


def print_role_summary(session):
    rows = [(r.name, sorted(rp.permission.code for rp in r.permissions)) for r in session.execute(select(Role)).scalars().all()]
    if not rows:
        print("[INFO] No roles present.")
        return
    name_w = max(len(r[0]) for r in rows)
    print(f"{'Role'.ljust(name_w)} | Count | Sample (up to 8)")
    print('-' * (name_w + 40))
    for name, codes in rows:
        print(f"{name.ljust(name_w)} | {str(len(codes)).rjust(5)} | {', '.join(codes[:8])}")


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description="Seed permissions, system roles and default users",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""Examples:\n  seed normally: seed.py\n  with sample data: seed.py --with-samples\n  dry run: seed.py --dry-run --show-roles\n""")
    )
    p.add_argument('--with-samples', action='store_true', help='Also seed sample categories, brands, products, customers and coupons')
    p.add_argument('--create-admin', metavar='EMAIL', help='Ensure a SUPER_ADMIN account with this email')
    p.add_argument('--show-roles', action='store_true', help='Print role permission counts after seeding')
    p.add_argument('--dry-run', action='store_true', help='Rollback after operations (no commit)')
    return p.parse_args(argv)


def run(session, args):
    created_p = ensure_permissions(session)
    created_r = ensure_roles(session)
    created_u = ensure_default_users(session)
    if args.create_admin:
        ensure_admin(session, args.create_admin)
    if args.with_samples:
        ensure_samples(session)
    return created_p, created_r, created_u


def main(argv=None):
    args = parse_args(argv)
    app = create_app()
    with app.app_context():
        session = get_db()
        # bootstrap fallback when migrations have not been run
        Base.metadata.create_all(session.get_bind())
        try:
            created_p, created_r, created_u = run(session, args)
            if args.show_roles:
                print('\nRole Permission Summary:')
                print_role_summary(session)
            if args.dry_run:
                session.rollback()
                print(f"[DRY-RUN] (rolled back) Permissions: {created_p}, Roles: {created_r}, Users: {created_u}")
            else:
                session.commit()
                print(f"[DONE] Permissions created: {created_p}, Roles created: {created_r}, Users created: {created_u}")
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


if __name__ == '__main__':
    main()
