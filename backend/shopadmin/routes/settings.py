from flask import Blueprint, request, abort, current_app
from flask_jwt_extended import get_jwt_identity
from sqlalchemy import select
from shopadmin import get_db
from shopadmin.models.setting import Setting
from shopadmin.config.settings import SETTINGS_SECTIONS, merged_settings
from shopadmin.decorators.auth import require_super_admin_role
from shopadmin.decorators.audit import audit_log

settings_bp = Blueprint('settings', __name__)


def _stored_sections(session):
    rows = session.execute(select(Setting)).scalars().all()
    return {s.section: s.data or {} for s in rows}


@settings_bp.get('')
@require_super_admin_role()
def get_settings():
    return merged_settings(_stored_sections(get_db()))


@settings_bp.put('')
@require_super_admin_role()
@audit_log(
    'SETTINGS.UPDATE',
    entity='Setting',
    meta_builder=lambda data, rv, a, kw: {'section': (request.json or {}).get('section')},
)
def update_settings():
    session = get_db()
    data = request.json or {}
    section = data.get('section')
    values = data.get('data')
    if section not in SETTINGS_SECTIONS:
        abort(400, description=f"section must be one of: {', '.join(SETTINGS_SECTIONS)}")
    if not isinstance(values, dict):
        abort(400, description='data must be an object')
    row = session.execute(select(Setting).where(Setting.section==section)).scalar_one_or_none()
    if row is None:
        row = Setting(section=section, data={})
        session.add(row)
    # reassign so the JSON column is flagged dirty
    row.data = {**(row.data or {}), **values}
    ident = get_jwt_identity()
    row.updated_by_id = int(ident) if ident is not None else None
    session.commit()
    current_app.logger.info('settings section %s updated by user %s', section, ident)
    return merged_settings(_stored_sections(session))
