"""
Payment provider synchronization engine.

Keeps a workspace's billing entities (customers, products, prices,
subscriptions, invoices, transactions) consistent with an external
payment provider through bulk initial syncs and real-time webhooks.
"""
