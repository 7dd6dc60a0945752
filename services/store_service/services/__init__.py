"""Store business operations (order lifecycle, payments, notifications, reports)."""
