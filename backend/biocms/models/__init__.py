# Re-export all models for convenient imports
from biocms.models.user import User, UserRole
from biocms.models.category import Category
from biocms.models.biography import Biography, BiographyReaction, BiographyComment, ReactionKind
from biocms.models.pricing import PricingPlan, Currency, BillingCycle, PlanStatus
from biocms.models.contact import Contact, ContactStatus, ContactPriority
from biocms.models.newsletter import Subscriber, SubscriberStatus, DigestFrequency
from biocms.models.faq import FAQ, FAQCategory
from biocms.models.activity import Activity
from biocms.models.site_setting import SiteSetting

__all__ = [
    # User
    "User",
    "UserRole",
    # Content
    "Category",
    "Biography",
    "BiographyReaction",
    "BiographyComment",
    "ReactionKind",
    "FAQ",
    "FAQCategory",
    # Pricing
    "PricingPlan",
    "Currency",
    "BillingCycle",
    "PlanStatus",
    # Contacts & newsletter
    "Contact",
    "ContactStatus",
    "ContactPriority",
    "Subscriber",
    "SubscriberStatus",
    "DigestFrequency",
    # Admin
    "Activity",
    "SiteSetting",
]
