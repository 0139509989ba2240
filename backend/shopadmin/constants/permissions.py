"""Central role / permission tables for the back office.

Permission strings follow the RESOURCE:ACTION pattern; RESOURCE:* grants every
action on a resource and *:* grants everything. Never rename codes silently:
the Permission table is seeded from ALL_PERMISSION_CODES.
"""
from __future__ import annotations
from typing import Dict, List, Tuple

SUPER_ADMIN = 'SUPER_ADMIN'
ADMIN = 'ADMIN'
MANAGER = 'MANAGER'
STAFF = 'STAFF'
VIEWER = 'VIEWER'

# Highest first, used for role pickers
ROLES = [SUPER_ADMIN, ADMIN, MANAGER, STAFF, VIEWER]

ROLE_HIERARCHY: Dict[str, int] = {
    VIEWER: 1,
    STAFF: 2,
    MANAGER: 3,
    ADMIN: 4,
    SUPER_ADMIN: 5,
}

ROLE_DISPLAY_NAMES: Dict[str, str] = {
    SUPER_ADMIN: 'Super Administrator',
    ADMIN: 'Administrator',
    MANAGER: 'Manager',
    STAFF: 'Staff Member',
    VIEWER: 'Viewer',
}

RESOURCE_ACTIONS: Dict[str, List[str]] = {
    'DASHBOARD': ['READ'],
    'PRODUCTS': ['READ', 'CREATE', 'UPDATE', 'DELETE'],
    'CATEGORIES': ['READ', 'CREATE', 'UPDATE', 'DELETE'],
    'BRANDS': ['READ', 'CREATE', 'UPDATE', 'DELETE'],
    'ORDERS': ['READ', 'CREATE', 'UPDATE', 'DELETE'],
    'CUSTOMERS': ['READ', 'CREATE', 'UPDATE', 'DELETE'],
    'MARKETING': ['READ', 'CREATE', 'UPDATE', 'DELETE'],
    'COUPONS': ['READ', 'CREATE', 'UPDATE', 'DELETE'],
    'CAMPAIGNS': ['READ', 'CREATE', 'UPDATE', 'DELETE'],
    'INVENTORY': ['READ', 'UPDATE'],
    'ANALYTICS': ['READ', 'EXPORT'],
    'REPORTS': ['READ', 'EXPORT'],
    'USERS': ['READ', 'CREATE', 'UPDATE', 'DELETE', 'MANAGE_ROLES'],
    'ROLES': ['READ', 'CREATE', 'UPDATE', 'DELETE'],
    'SETTINGS': ['READ', 'UPDATE'],
    'AUDIT_LOGS': ['READ'],
}


def build_all_permission_codes() -> List[str]:
    codes: List[str] = []
    for resource, actions in RESOURCE_ACTIONS.items():
        for act in actions:
            codes.append(f"{resource}:{act}")
    return codes

ALL_PERMISSION_CODES = build_all_permission_codes()

ROLE_PERMISSIONS: Dict[str, List[str]] = {
    SUPER_ADMIN: ['*:*'],
    ADMIN: [
        'DASHBOARD:READ',
        'PRODUCTS:*', 'CATEGORIES:*', 'BRANDS:*',
        'ORDERS:*', 'CUSTOMERS:*',
        'MARKETING:*', 'COUPONS:*', 'CAMPAIGNS:*',
        'ANALYTICS:READ', 'ANALYTICS:EXPORT',
        'REPORTS:READ', 'REPORTS:EXPORT',
        'SETTINGS:READ', 'SETTINGS:UPDATE',
        'AUDIT_LOGS:READ',
        'USERS:READ', 'USERS:CREATE', 'USERS:UPDATE', 'USERS:DELETE',
        'INVENTORY:*',
    ],
    MANAGER: [
        'DASHBOARD:READ',
        'PRODUCTS:*', 'CATEGORIES:*', 'BRANDS:*',
        'ORDERS:*', 'CUSTOMERS:*',
        'MARKETING:*', 'COUPONS:*', 'CAMPAIGNS:*',
        'ANALYTICS:READ',
        'REPORTS:READ',
        'USERS:READ',
        'INVENTORY:*',
    ],
    STAFF: [
        'DASHBOARD:READ',
        'PRODUCTS:READ', 'PRODUCTS:UPDATE',
        'CATEGORIES:READ', 'BRANDS:READ',
        'ORDERS:READ', 'ORDERS:UPDATE',
        'CUSTOMERS:READ', 'CUSTOMERS:UPDATE',
        'MARKETING:READ', 'COUPONS:READ',
        'INVENTORY:READ', 'INVENTORY:UPDATE',
    ],
    VIEWER: [
        'DASHBOARD:READ',
        'PRODUCTS:READ', 'CATEGORIES:READ', 'BRANDS:READ',
        'ORDERS:READ', 'CUSTOMERS:READ',
        'ANALYTICS:READ', 'REPORTS:READ',
        'INVENTORY:READ',
    ],
}

LOGIN_REQUIRED_MESSAGE = 'กรุณาเข้าสู่ระบบก่อนดำเนินการ'
SUPER_ADMIN_ONLY_MESSAGE = 'เฉพาะ Super Administrator เท่านั้นที่สามารถดำเนินการนี้ได้'
DEFAULT_DENIED_TEMPLATE = 'คุณไม่มีสิทธิ์ในการดำเนินการ {action} กับ {resource}'

PERMISSION_DENIED_MESSAGES: Dict[str, Dict[str, str]] = {
    'PRODUCTS': {
        'READ': 'คุณไม่มีสิทธิ์ในการดูข้อมูลสินค้า',
        'CREATE': 'คุณไม่มีสิทธิ์ในการเพิ่มสินค้าใหม่',
        'UPDATE': 'คุณไม่มีสิทธิ์ในการแก้ไขข้อมูลสินค้า',
        'DELETE': 'คุณไม่มีสิทธิ์ในการลบสินค้า',
    },
    'ORDERS': {
        'READ': 'คุณไม่มีสิทธิ์ในการดูข้อมูลคำสั่งซื้อ',
        'CREATE': 'คุณไม่มีสิทธิ์ในการสร้างคำสั่งซื้อ',
        'UPDATE': 'คุณไม่มีสิทธิ์ในการแก้ไขคำสั่งซื้อ',
        'DELETE': 'คุณไม่มีสิทธิ์ในการลบคำสั่งซื้อ',
    },
    'CUSTOMERS': {
        'READ': 'คุณไม่มีสิทธิ์ในการดูข้อมูลลูกค้า',
        'CREATE': 'คุณไม่มีสิทธิ์ในการเพิ่มลูกค้าใหม่',
        'UPDATE': 'คุณไม่มีสิทธิ์ในการแก้ไขข้อมูลลูกค้า',
        'DELETE': 'คุณไม่มีสิทธิ์ในการลบลูกค้า',
    },
    'USERS': {
        'READ': 'คุณไม่มีสิทธิ์ในการดูข้อมูลผู้ใช้',
        'CREATE': 'คุณไม่มีสิทธิ์ในการสร้างผู้ใช้ใหม่',
        'UPDATE': 'คุณไม่มีสิทธิ์ในการแก้ไขข้อมูลผู้ใช้',
        'DELETE': 'คุณไม่มีสิทธิ์ในการลบผู้ใช้',
        'MANAGE_ROLES': 'คุณไม่มีสิทธิ์ในการจัดการบทบาทผู้ใช้',
    },
    'MARKETING': {
        'READ': 'คุณไม่มีสิทธิ์ในการดูข้อมูลการตลาด',
        'CREATE': 'คุณไม่มีสิทธิ์ในการสร้างแคมเปญการตลาด',
        'UPDATE': 'คุณไม่มีสิทธิ์ในการแก้ไขแคมเปญการตลาด',
        'DELETE': 'คุณไม่มีสิทธิ์ในการลบแคมเปญการตลาด',
    },
    'COUPONS': {
        'READ': 'คุณไม่มีสิทธิ์ในการดูคูปอง',
        'CREATE': 'คุณไม่มีสิทธิ์ในการสร้างคูปองใหม่',
        'UPDATE': 'คุณไม่มีสิทธิ์ในการแก้ไขคูปอง',
        'DELETE': 'คุณไม่มีสิทธิ์ในการลบคูปอง',
    },
    'ANALYTICS': {
        'READ': 'คุณไม่มีสิทธิ์ในการดูรายงานและสถิติ',
        'EXPORT': 'คุณไม่มีสิทธิ์ในการส่งออกรายงาน',
    },
    'SETTINGS': {
        'READ': 'คุณไม่มีสิทธิ์ในการดูการตั้งค่าระบบ',
        'UPDATE': 'คุณไม่มีสิทธิ์ในการแก้ไขการตั้งค่าระบบ',
    },
}

# Dashboard page path -> (resource, action) required to open it
PAGE_PERMISSIONS: Dict[str, Tuple[str, str]] = {
    '/dashboard': ('DASHBOARD', 'READ'),
    '/dashboard/products': ('PRODUCTS', 'READ'),
    '/dashboard/products/add': ('PRODUCTS', 'CREATE'),
    '/dashboard/products/categories': ('CATEGORIES', 'READ'),
    '/dashboard/products/brands': ('BRANDS', 'READ'),
    '/dashboard/orders': ('ORDERS', 'READ'),
    '/dashboard/customers': ('CUSTOMERS', 'READ'),
    '/dashboard/marketing': ('MARKETING', 'READ'),
    '/dashboard/marketing/coupons': ('COUPONS', 'READ'),
    '/dashboard/marketing/campaigns': ('CAMPAIGNS', 'READ'),
    '/dashboard/analytics': ('ANALYTICS', 'READ'),
    '/dashboard/reports': ('REPORTS', 'READ'),
    '/dashboard/users': ('USERS', 'READ'),
    '/dashboard/roles': ('ROLES', 'READ'),
    '/dashboard/settings': ('SETTINGS', 'READ'),
}

# Sidebar feature key -> roles allowed to see it
FEATURE_ACCESS: Dict[str, List[str]] = {
    'products.view': [ADMIN, STAFF, VIEWER],
    'products.create': [ADMIN, STAFF],
    'products.edit': [ADMIN, STAFF],
    'products.delete': [ADMIN],
    'orders.view': [ADMIN, STAFF, VIEWER],
    'orders.create': [ADMIN, STAFF],
    'orders.edit': [ADMIN, STAFF],
    'orders.delete': [ADMIN],
    'orders.refund': [ADMIN],
    'customers.view': [ADMIN, STAFF, VIEWER],
    'customers.create': [ADMIN, STAFF],
    'customers.edit': [ADMIN, STAFF],
    'customers.delete': [ADMIN],
    'customers.blacklist': [ADMIN],
    'analytics.view': [ADMIN, STAFF, VIEWER],
    'analytics.export': [ADMIN, STAFF],
    'marketing.view': [ADMIN, STAFF],
    'marketing.create': [ADMIN, STAFF],
    'marketing.edit': [ADMIN, STAFF],
    'marketing.delete': [ADMIN],
    'settings.view': [ADMIN],
    'settings.edit': [ADMIN],
    'users.view': [ADMIN],
    'users.create': [ADMIN],
    'users.edit': [ADMIN],
    'users.delete': [ADMIN],
    'audit.view': [ADMIN],
    'inventory.view': [ADMIN, STAFF, VIEWER],
    'inventory.adjust': [ADMIN, STAFF],
    'reports.view': [ADMIN, STAFF],
    'reports.export': [ADMIN, STAFF],
}

# Sidebar entries: (label, path, feature key or None when page permissions decide)
NAVIGATION = [
    ('Dashboard', '/dashboard', None),
    ('Products', '/dashboard/products', 'products.view'),
    ('Categories', '/dashboard/products/categories', None),
    ('Brands', '/dashboard/products/brands', None),
    ('Orders', '/dashboard/orders', 'orders.view'),
    ('Customers', '/dashboard/customers', 'customers.view'),
    ('Inventory', '/dashboard/inventory', 'inventory.view'),
    ('Marketing', '/dashboard/marketing', 'marketing.view'),
    ('Coupons', '/dashboard/marketing/coupons', None),
    ('Campaigns', '/dashboard/marketing/campaigns', None),
    ('Analytics', '/dashboard/analytics', 'analytics.view'),
    ('Reports', '/dashboard/reports', 'reports.view'),
    ('Users', '/dashboard/users', 'users.view'),
    ('Roles', '/dashboard/roles', None),
    ('Settings', '/dashboard/settings', 'settings.view'),
]
