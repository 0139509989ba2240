from sqlalchemy import select
from shopadmin import get_db
from shopadmin.constants.permissions import ALL_PERMISSION_CODES, ROLES
from shopadmin.models.authz import Role, Permission, User
from shopadmin.models.marketing import Coupon
from scripts.seed import run, parse_args


def test_parse_args_flags():
    args = parse_args(['--with-samples', '--create-admin', 'Boss@Example.com', '--dry-run'])
    assert args.with_samples and args.dry_run and not args.show_roles
    assert args.create_admin == 'Boss@Example.com'


def test_seed_is_idempotent_and_aligned(app_instance):
    with app_instance.app_context():
        session = get_db()
        args = parse_args(['--with-samples', '--create-admin', 'Seed.Owner@Example.com'])
        run(session, args)
        session.commit()
        created_again = run(session, args)
        session.commit()
        assert created_again == (0, 0, 0)

        codes = set(session.execute(select(Permission.code)).scalars().all())
        assert set(ALL_PERMISSION_CODES) <= codes
        roles = {r.name: r for r in session.execute(select(Role)).scalars().all()}
        for name in ROLES:
            assert roles[name].is_system
        assert {rp.permission.code for rp in roles['SUPER_ADMIN'].permissions} >= set(ALL_PERMISSION_CODES)
        viewer_codes = {rp.permission.code for rp in roles['VIEWER'].permissions}
        assert 'REPORTS:READ' in viewer_codes and 'PRODUCTS:CREATE' not in viewer_codes

        owner = session.execute(select(User).where(User.email == 'seed.owner@example.com')).scalar_one()
        assert owner.role == 'SUPER_ADMIN'
        assert [ur.role.name for ur in owner.user_roles] == ['SUPER_ADMIN']
        assert session.execute(select(Coupon).where(Coupon.code == 'WELCOME10')).scalar_one().value == 10


def test_dry_run_leaves_nothing_behind(app_instance):
    with app_instance.app_context():
        session = get_db()
        run(session, parse_args(['--create-admin', 'dry-run-admin@example.com', '--dry-run']))
        session.rollback()
        assert session.execute(select(User).where(User.email == 'dry-run-admin@example.com')).scalar_one_or_none() is None
