from fastapi import APIRouter
from biocms.api.v1.endpoints import auth, biographies, categories, pricing, faqs, contacts, newsletter, site_settings, home
from biocms.api.v1.endpoints.admin import admin_router

api_router = APIRouter()

# Public content
api_router.include_router(home.router, prefix="/home", tags=["Home"])
api_router.include_router(biographies.router, prefix="/biographies", tags=["Biographies"])
api_router.include_router(categories.router, prefix="/categories", tags=["Categories"])
api_router.include_router(pricing.router, prefix="/pricing", tags=["Pricing"])
api_router.include_router(faqs.router, prefix="/faqs", tags=["FAQs"])

# Accounts and visitor interaction
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(contacts.router, prefix="/contacts", tags=["Contacts"])
api_router.include_router(newsletter.router, prefix="/newsletter", tags=["Newsletter"])
api_router.include_router(site_settings.router, prefix="/settings", tags=["Settings"])

# Admin dashboard
api_router.include_router(admin_router)
