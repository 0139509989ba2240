from __future__ import annotations
from datetime import timedelta
from flask import Blueprint, request, abort, current_app, Response
from shopadmin import get_db
from shopadmin.models.authz import utcnow
from shopadmin.decorators.auth import require_permission
from shopadmin.errors import PermissionDenied
from shopadmin.services.policy import check_permission
from shopadmin.services import reports
from shopadmin.utils.filters import coerce_date, end_of_day

rpt_bp = Blueprint('reports', __name__)


def _date_arg(name: str, upper: bool = False):
    raw = request.args.get(name)
    if not raw:
        return None
    try:
        return end_of_day(raw) if upper else coerce_date(raw)
    except ValueError:
        abort(400, description=f'{name} invalid')


@rpt_bp.get('/revenue')
@require_permission('DASHBOARD', 'READ')
def revenue():
    start = _date_arg('start_date')
    end = _date_arg('end_date', upper=True)
    return {'data': reports.revenue_summary(get_db(), start, end)}


@rpt_bp.get('/analytics')
@require_permission('ANALYTICS', 'READ')
def analytics():
    period = request.args.get('period') or '12months'
    if period not in reports.PERIODS:
        abort(400, description=f"period must be one of: {', '.join(reports.PERIODS)}")
    session = get_db()
    return {
        'overview': reports.overview(session, period),
        'sales_chart': reports.sales_chart(session),
    }


@rpt_bp.get('/reports')
@require_permission('REPORTS', 'READ')
def generate_report():
    report_type = request.args.get('type') or 'sales'
    fmt = (request.args.get('format') or 'json').lower()
    if report_type not in reports.REPORT_TYPES:
        abort(400, description='Invalid report type')
    if fmt not in ('json', 'csv'):
        abort(400, description='format must be json or csv')
    if fmt == 'csv':
        result = check_permission('REPORTS', 'EXPORT')
        if not result.success:
            raise PermissionDenied(result.message, 'REPORTS:EXPORT', result.user_role)

    session = get_db()
    start = _date_arg('start_date')
    end = _date_arg('end_date', upper=True)
    if report_type == 'sales':
        now = utcnow()
        body = reports.sales_report(session, start or now - timedelta(days=30), end or now)
    elif report_type == 'inventory':
        body = reports.inventory_report(session, current_app.config['LOW_STOCK_THRESHOLD'])
    elif report_type == 'customers':
        body = reports.customers_report(session)
    else:
        body = reports.products_report(session)
    current_app.logger.info('report %s generated as %s (%d rows)', report_type, fmt, len(body['data']))

    if fmt == 'csv':
        filename = f"{report_type}_report_{utcnow().date().isoformat()}.csv"
        return Response(
            reports.to_csv(body['data']),
            mimetype='text/csv',
            headers={'Content-Disposition': f'attachment; filename="{filename}"'},
        )
    return {
        'type': report_type,
        'data': body,
        'generated_at': utcnow().isoformat(),
        'parameters': {
            'start_date': request.args.get('start_date'),
            'end_date': request.args.get('end_date'),
            'format': fmt,
        },
    }
