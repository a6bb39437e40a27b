"""User-facing messages.

The portal speaks Arabic to its users; every failure path ends in exactly one of
these strings. Keep them short enough to fit a toast notification.
"""

from typing import Final

# Validation
INVALID_NAME: Final = "اسم غير صالح. يجب أن يكون بين 2-50 حرف ويحتوي على أحرف صالحة فقط."
INVALID_EMAIL_OR_TOO_LONG: Final = "بريد إلكتروني غير صالح أو طويل جداً."
INVALID_EMAIL: Final = "بريد إلكتروني غير صالح."
INVALID_PASSWORD: Final = "كلمة المرور يجب أن تكون 8 أحرف على الأقل وتحتوي على حرف ورقم."
INVALID_MESSAGE: Final = "الرسالة غير صالحة أو طويلة جداً."

# Rate limiting
RATE_LIMITED: Final = "تم تجاوز عدد المحاولات المسموح. حاول مرة أخرى بعد {minutes} دقيقة."

# Authentication
USER_EXISTS: Final = "المستخدم موجود بالفعل."
REGISTERED: Final = "تم إنشاء الحساب بنجاح."
LOGGED_IN: Final = "تم تسجيل الدخول بنجاح."
USER_DATA_MISSING: Final = "بيانات المستخدم غير موجودة."
ACCOUNT_BANNED: Final = "تم حظر هذا الحساب."
GOOGLE_LOGIN_FAILED: Final = "فشل في تسجيل الدخول عبر جوجل."
GOOGLE_DEFAULT_NAME: Final = "مستخدم جوجل"
ADMIN_LOGGED_IN: Final = "تم تسجيل دخول الإدارة بنجاح."
ADMIN_LOGIN_FAILED: Final = "خطأ في تسجيل دخول الإدارة."
INVALID_CREDENTIALS: Final = "بيانات الدخول غير صحيحة."
LOGGED_OUT: Final = "تم تسجيل الخروج."
LOGIN_REQUIRED: Final = "يجب تسجيل الدخول أولاً."
ADMIN_REQUIRED: Final = "هذه العملية متاحة للإدارة فقط."
ACCESS_DENIED: Final = "رمز الوصول غير صالح أو منتهي الصلاحية."

PROVIDER_ERRORS: Final[dict[str, str]] = {
    "auth/email-already-in-use": "البريد الإلكتروني مستخدم بالفعل.",
    "auth/weak-password": "كلمة المرور ضعيفة جداً.",
    "auth/invalid-email": "بريد إلكتروني غير صالح.",
    "auth/user-not-found": "المستخدم غير موجود.",
    "auth/wrong-password": "كلمة المرور غير صحيحة.",
    "auth/too-many-requests": "تم تجاوز عدد المحاولات المسموح. حاول لاحقاً.",
    "auth/network-request-failed": "خطأ في الاتصال بالشبكة.",
    "auth/invalid-credential": "بيانات الدخول غير صحيحة.",
}
UNEXPECTED_ERROR: Final = "حدث خطأ غير متوقع."

# Chat
CHAT_ALREADY_OPEN: Final = "الدردشة مفتوحة بالفعل."
CHAT_OPENED: Final = "تم فتح الدردشة بنجاح."
CHAT_OPEN_FAILED: Final = "خطأ في فتح الدردشة."
CHAT_NOT_OPEN: Final = "لا توجد جلسة دردشة مفتوحة."
CHAT_CLOSED_OK: Final = "تم إغلاق الدردشة بنجاح."
CHAT_CLOSE_FAILED: Final = "خطأ في إغلاق الدردشة."
CHAT_CLOSED: Final = "الدردشة مغلقة حالياً."
USER_BANNED_FROM_CHAT: Final = "تم حظرك من الدردشة."
MESSAGE_SENT: Final = "تم إرسال الرسالة بنجاح."
MESSAGE_SEND_FAILED: Final = "خطأ في إرسال الرسالة."
MESSAGE_NOT_FOUND: Final = "الرسالة غير موجودة."
MESSAGE_DELETED: Final = "تم حذف الرسالة بنجاح."
MESSAGE_DELETE_FAILED: Final = "خطأ في حذف الرسالة."
DELETED_MESSAGE_PLACEHOLDER: Final = "تم حذف هذه الرسالة"
USER_ALREADY_BANNED: Final = "المستخدم محظور بالفعل."
USER_BANNED: Final = "تم حظر المستخدم بنجاح."
BAN_FAILED: Final = "خطأ في حظر المستخدم."
USER_NOT_BANNED: Final = "المستخدم غير محظور."
USER_UNBANNED: Final = "تم إلغاء حظر المستخدم بنجاح."
UNBAN_FAILED: Final = "خطأ في إلغاء حظر المستخدم."
MESSAGES_CLEARED: Final = "تم مسح جميع الرسائل بنجاح."
CLEAR_FAILED: Final = "خطأ في مسح الرسائل."

# Articles
ARTICLE_TITLE_INVALID: Final = "عنوان المقال يجب أن يكون بين 5-200 حرف."
ARTICLE_DESCRIPTION_INVALID: Final = "وصف المقال يجب أن يكون 10 أحرف على الأقل."
ARTICLE_CONTENT_INVALID: Final = "محتوى المقال يجب أن يكون 50 حرف على الأقل."
IMAGE_URL_INVALID: Final = "رابط صورة غير صالح."
CARD_IMAGE_URL_INVALID: Final = "رابط صورة البطاقة غير صالح."
ARTICLE_CREATED: Final = "تم إنشاء المقال بنجاح."
ARTICLE_CREATE_FAILED: Final = "خطأ في إنشاء المقال."
ARTICLE_NOT_FOUND: Final = "المقال غير موجود."
ARTICLE_UPDATED: Final = "تم تحديث المقال بنجاح."
ARTICLE_UPDATE_FAILED: Final = "خطأ في تحديث المقال."
ARTICLE_DELETED: Final = "تم حذف المقال بنجاح."
ARTICLE_DELETE_FAILED: Final = "خطأ في حذف المقال."

# Projects
PROJECT_NAME_INVALID: Final = "اسم المشروع يجب أن يكون بين 3-100 حرف."
PROJECT_DESCRIPTION_INVALID: Final = "وصف المشروع يجب أن يكون 10 أحرف على الأقل."
PROJECT_LINK_INVALID: Final = "رابط المشروع غير صالح."
PROJECT_IMAGE_INVALID: Final = "رابط صورة المشروع غير صالح."
PROJECT_CREATED: Final = "تم إنشاء المشروع بنجاح."
PROJECT_CREATE_FAILED: Final = "خطأ في إنشاء المشروع."
PROJECT_NOT_FOUND: Final = "المشروع غير موجود."
PROJECT_UPDATED: Final = "تم تحديث المشروع بنجاح."
PROJECT_UPDATE_FAILED: Final = "خطأ في تحديث المشروع."
PROJECT_DELETED: Final = "تم حذف المشروع بنجاح."
PROJECT_DELETE_FAILED: Final = "خطأ في حذف المشروع."


def rate_limited(remaining_seconds: int) -> str:
    """Format the lockout message, rounding the wait up to whole minutes."""
    minutes = -(-remaining_seconds // 60)
    return RATE_LIMITED.format(minutes=minutes)


def provider_error(code: str | None) -> str:
    """Translate an identity-provider error code into a display message."""
    return PROVIDER_ERRORS.get(code or "", UNEXPECTED_ERROR)
