from app.api.routes import carriers, fedex_records, shipped_orders

__all__ = ["carriers", "fedex_records", "shipped_orders"]
