"""
Payments app: one interface for payments, refunds, customers, subscriptions
and plans across Stripe, PayPal and an in-process sandbox.
"""
