from checkout.api.routes import pricing_router

__all__ = ["pricing_router"]
