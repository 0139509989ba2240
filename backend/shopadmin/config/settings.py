"""Store settings defaults. Stored sections are merged over these per key."""
from __future__ import annotations
import copy
from typing import Any, Dict

DEFAULT_SETTINGS: Dict[str, Dict[str, Any]] = {
    'store': {
        'name': 'ร้านค้าออนไลน์',
        'description': 'ร้านค้าออนไลน์ของเรา',
        'email': 'contact@store.com',
        'phone': '02-123-4567',
        'address': 'กรุงเทพมหานคร ประเทศไทย',
        'website': 'https://store.com',
        'logo': None,
        'currency': 'THB',
        'timezone': 'Asia/Bangkok',
        'language': 'th',
    },
    'notifications': {
        'email_notifications': True,
        'order_notifications': True,
        'inventory_alerts': True,
        'customer_notifications': False,
        'marketing_emails': False,
        'system_updates': True,
        'low_stock_threshold': 10,
        'email_template': 'default',
    },
    'payment': {
        'enable_credit_card': True,
        'enable_bank_transfer': True,
        'enable_promptpay': True,
        'enable_cod': False,
        'payment_methods': [
            {'id': 'credit_card', 'name': 'บัตรเครดิต/เดบิต', 'enabled': True},
            {'id': 'bank_transfer', 'name': 'โอนเงินผ่านธนาคาร', 'enabled': True},
            {'id': 'promptpay', 'name': 'PromptPay', 'enabled': True},
            {'id': 'cod', 'name': 'เก็บเงินปลายทาง', 'enabled': False},
        ],
        'tax_rate': 7.0,
        'shipping_fee': 50,
    },
    'shipping': {
        'free_shipping_threshold': 1000,
        'default_shipping_fee': 50,
        'express_shipping_fee': 100,
        'shipping_zones': [
            {'id': 'bangkok', 'name': 'กรุงเทพมหานคร', 'fee': 30},
            {'id': 'central', 'name': 'ภาคกลาง', 'fee': 50},
            {'id': 'north', 'name': 'ภาคเหนือ', 'fee': 70},
            {'id': 'northeast', 'name': 'ภาคอีสาน', 'fee': 70},
            {'id': 'south', 'name': 'ภาคใต้', 'fee': 80},
        ],
        'estimated_delivery': {
            'standard': '2-3 วัน',
            'express': '1-2 วัน',
        },
    },
    'security': {
        'enable_two_factor': False,
        'session_timeout': 24,
        'password_policy': {
            'min_length': 8,
            'require_uppercase': True,
            'require_lowercase': True,
            'require_numbers': True,
            'require_special_chars': False,
        },
        'allowed_login_attempts': 5,
        'lockout_duration': 30,
    },
    'api': {
        'enable_api': True,
        'rate_limit': 1000,
        'webhook_url': '',
    },
}

SETTINGS_SECTIONS = tuple(DEFAULT_SETTINGS.keys())


def merged_settings(stored: Dict[str, Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    out = copy.deepcopy(DEFAULT_SETTINGS)
    for section, data in stored.items():
        if section in out and isinstance(data, dict):
            out[section].update(data)
    return out
