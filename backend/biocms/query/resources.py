"""Query schemas for every list endpoint."""
from biocms.models import (
    BillingCycle,
    ContactPriority,
    ContactStatus,
    Currency,
    DigestFrequency,
    FAQCategory,
    PlanStatus,
    SubscriberStatus,
    UserRole,
)
from biocms.query.schema import FieldKind, InternalField, PublicField, ResourceSchema


def _choices(enum_cls):
    return tuple(member.value for member in enum_cls)


ID = PublicField("id", kind=FieldKind.ID, sortable=True)
CREATED_AT = PublicField("createdAt", kind=FieldKind.DATETIME)
UPDATED_AT = PublicField("updatedAt", kind=FieldKind.DATETIME)


USER_SCHEMA = ResourceSchema(
    resource="users",
    fields=(
        ID,
        PublicField("firstName", searchable=True),
        PublicField("lastName", searchable=True),
        PublicField("email", searchable=True),
        PublicField("role", kind=FieldKind.ENUM, choices=_choices(UserRole)),
        PublicField("isActive", kind=FieldKind.BOOLEAN),
        PublicField("lastLogin", kind=FieldKind.DATETIME),
        PublicField("credentialsChangedAt", kind=FieldKind.DATETIME, filterable=False),
        CREATED_AT,
        UPDATED_AT,
        InternalField("hashedPassword"),
        InternalField("resetTokenHash"),
        InternalField("resetTokenExpires"),
    ),
)


CATEGORY_SCHEMA = ResourceSchema(
    resource="categories",
    fields=(
        ID,
        PublicField("name", searchable=True),
        PublicField("slug"),
        PublicField("description", searchable=True, sortable=False),
        PublicField("icon", filterable=False, sortable=False),
        PublicField("color", filterable=False, sortable=False),
        PublicField("parentId", kind=FieldKind.ID),
        PublicField("featured", kind=FieldKind.BOOLEAN),
        PublicField("order", attribute="display_order", kind=FieldKind.INTEGER),
        PublicField("isActive", kind=FieldKind.BOOLEAN),
        PublicField("createdBy", kind=FieldKind.ID, sortable=False),
        CREATED_AT,
        UPDATED_AT,
    ),
    default_sort=("order", "name"),
)


BIOGRAPHY_SCHEMA = ResourceSchema(
    resource="biographies",
    fields=(
        ID,
        PublicField("name", searchable=True),
        PublicField("slug"),
        PublicField("title", searchable=True),
        PublicField("shortDescription", searchable=True, sortable=False),
        PublicField("description", searchable=True, filterable=False, sortable=False),
        PublicField("birthDate", kind=FieldKind.DATETIME),
        PublicField("deathDate", kind=FieldKind.DATETIME),
        PublicField("birthPlace"),
        PublicField("nationality", kind=FieldKind.LIST, sortable=False),
        PublicField("occupation", kind=FieldKind.LIST, sortable=False, searchable=True),
        PublicField("knownFor", kind=FieldKind.LIST, sortable=False),
        PublicField("tags", kind=FieldKind.LIST, sortable=False),
        PublicField("timeline", kind=FieldKind.DOCUMENT, filterable=False, sortable=False),
        PublicField("quotes", kind=FieldKind.DOCUMENT, filterable=False, sortable=False),
        PublicField("education", kind=FieldKind.DOCUMENT, filterable=False, sortable=False),
        PublicField("awards", kind=FieldKind.DOCUMENT, filterable=False, sortable=False),
        PublicField("sources", kind=FieldKind.DOCUMENT, filterable=False, sortable=False),
        PublicField("image", filterable=False, sortable=False),
        PublicField("profileImage", filterable=False, sortable=False),
        PublicField("categoryId", kind=FieldKind.ID),
        PublicField("featured", kind=FieldKind.BOOLEAN),
        PublicField("published", kind=FieldKind.BOOLEAN),
        PublicField("publishedAt", kind=FieldKind.DATETIME),
        PublicField("biographyOfTheDay", kind=FieldKind.BOOLEAN),
        PublicField("biographyOfTheDayDate", kind=FieldKind.DATETIME),
        PublicField("views", kind=FieldKind.INTEGER),
        PublicField("likes", kind=FieldKind.INTEGER),
        PublicField("bookmarks", kind=FieldKind.INTEGER),
        PublicField("createdBy", kind=FieldKind.ID, sortable=False),
        CREATED_AT,
        UPDATED_AT,
    ),
)


COMMENT_SCHEMA = ResourceSchema(
    resource="comments",
    fields=(
        ID,
        PublicField("biographyId", kind=FieldKind.ID, sortable=False),
        PublicField("userId", kind=FieldKind.ID, sortable=False),
        PublicField("content", searchable=True, sortable=False),
        CREATED_AT,
    ),
)


PRICING_SCHEMA = ResourceSchema(
    resource="plans",
    fields=(
        ID,
        PublicField("name", searchable=True),
        PublicField("description", searchable=True, sortable=False),
        PublicField("price", kind=FieldKind.FLOAT),
        PublicField("currency", kind=FieldKind.ENUM, choices=_choices(Currency)),
        PublicField("billingCycle", kind=FieldKind.ENUM, choices=_choices(BillingCycle)),
        PublicField("features", kind=FieldKind.LIST, sortable=False),
        PublicField("isPopular", kind=FieldKind.BOOLEAN),
        PublicField("status", kind=FieldKind.ENUM, choices=_choices(PlanStatus)),
        PublicField("order", attribute="display_order", kind=FieldKind.INTEGER),
        CREATED_AT,
        UPDATED_AT,
    ),
    default_sort=("order", "price"),
)


CONTACT_SCHEMA = ResourceSchema(
    resource="contacts",
    fields=(
        ID,
        PublicField("name", searchable=True),
        PublicField("email", searchable=True),
        PublicField("subject", searchable=True),
        PublicField("message", searchable=True, filterable=False, sortable=False),
        PublicField("status", kind=FieldKind.ENUM, choices=_choices(ContactStatus)),
        PublicField("priority", kind=FieldKind.ENUM, choices=_choices(ContactPriority)),
        PublicField("repliedAt", kind=FieldKind.DATETIME),
        PublicField("repliedBy", kind=FieldKind.ID, sortable=False),
        PublicField("ipAddress", filterable=False, sortable=False),
        CREATED_AT,
        UPDATED_AT,
    ),
)


SUBSCRIBER_SCHEMA = ResourceSchema(
    resource="subscribers",
    fields=(
        ID,
        PublicField("email", searchable=True),
        PublicField("name", searchable=True),
        PublicField("status", kind=FieldKind.ENUM, choices=_choices(SubscriberStatus)),
        PublicField("frequency", kind=FieldKind.ENUM, choices=_choices(DigestFrequency)),
        PublicField("subscribedAt", kind=FieldKind.DATETIME),
        PublicField("unsubscribedAt", kind=FieldKind.DATETIME),
        CREATED_AT,
        InternalField("verificationTokenHash"),
        InternalField("verificationExpires"),
    ),
)


FAQ_SCHEMA = ResourceSchema(
    resource="faqs",
    fields=(
        ID,
        PublicField("question", searchable=True),
        PublicField("answer", searchable=True, filterable=False, sortable=False),
        PublicField("category", kind=FieldKind.ENUM, choices=_choices(FAQCategory)),
        PublicField("active", kind=FieldKind.BOOLEAN),
        PublicField("order", attribute="display_order", kind=FieldKind.INTEGER),
        CREATED_AT,
        UPDATED_AT,
    ),
    default_sort=("order", "createdAt"),
)


ACTIVITY_SCHEMA = ResourceSchema(
    resource="activities",
    fields=(
        ID,
        PublicField("userId", kind=FieldKind.ID),
        PublicField("action", searchable=True),
        PublicField("targetType"),
        PublicField("targetId", kind=FieldKind.ID),
        PublicField("details", filterable=False, sortable=False),
        PublicField("ipAddress", sortable=False),
        PublicField("userAgent", filterable=False, sortable=False),
        CREATED_AT,
    ),
)
