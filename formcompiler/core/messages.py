"""
Localized messages for field-level validation errors.

Validators only produce an error code plus parameters; the text is
rendered when a submission is validated, so one compiled schema can serve
every locale.
"""

import logging
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "en-US"

_EN_US = {
    "required": "{label} is required",
    "invalid_type": "{label} must be {expected}",
    "invalid_boolean": "{label} must be a boolean-like value, got {received}",
    "invalid_number": "{label} must be a number",
    "invalid_date": "{label} must be a valid date",
    "invalid_option": "{label} must be one of: {allowed}",
    "empty_selection": "Select at least one option for {label}",
    "duplicate_selection": "{label} contains {value} more than once",
    "invalid_email": "{label} must be a valid email address",
    "invalid_url": "{label} must be a valid URL",
    "invalid_phone": "{label} must be a valid phone number",
    "too_small": "{label} must be at least {minimum}",
    "too_big": "{label} must be at most {maximum}",
    "invalid_payload": "Submission must be an object",
}

_ZH_CN = {
    "required": "{label}不能为空",
    "invalid_type": "{label}类型错误，应为{expected}",
    "invalid_boolean": "{label}必须是布尔值，收到 {received}",
    "invalid_number": "{label}必须是数字",
    "invalid_date": "{label}日期无效",
    "invalid_option": "{label}必须是以下选项之一：{allowed}",
    "empty_selection": "{label}至少选择一项",
    "duplicate_selection": "{label}中的{value}重复",
    "invalid_email": "{label}格式无效",
    "invalid_url": "{label}URL格式无效",
    "invalid_phone": "请输入有效的{label}",
    "too_small": "{label}不能小于{minimum}",
    "too_big": "{label}不能大于{maximum}",
    "invalid_payload": "提交的数据必须是对象",
}

CATALOGS: dict[str, dict[str, str]] = {
    "en-US": _EN_US,
    "zh-CN": _ZH_CN,
}


def resolve_locale(locale: str | None) -> str:
    """Return a supported locale, falling back to the default."""
    if locale is None or locale in CATALOGS:
        return locale or DEFAULT_LOCALE

    logger.warning("Locale %r not supported, using %r", locale, DEFAULT_LOCALE)
    return DEFAULT_LOCALE


def render_message(code: str, locale: str | None = None, **params: Any) -> str:
    """Render the message for an error code in the given locale.

    Unknown codes render as the code itself so nothing is silently lost.
    """
    catalog = CATALOGS[resolve_locale(locale)]
    template = catalog.get(code)
    if template is None:
        return code
    try:
        return template.format(**params)
    except (KeyError, IndexError):
        return template
