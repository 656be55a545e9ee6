"""Main API router that includes all endpoint routers."""

from fastapi import APIRouter

from sunsano.api.v1 import orders, payments, products, reviews, stripe_checkout

api_router = APIRouter()

# Catalogue
api_router.include_router(products.router, prefix="/products", tags=["Products"])

# Reviews
api_router.include_router(reviews.router, prefix="/reviews", tags=["Reviews"])

# Orders
api_router.include_router(orders.router, prefix="/orders", tags=["Orders"])

# Payments
api_router.include_router(payments.router, prefix="/payments", tags=["Payments"])

# Hosted checkout
api_router.include_router(stripe_checkout.router, prefix="/stripe", tags=["Stripe"])
