"""Lightning Network integration backed by a Core Lightning (lightningd) node.

Provides the RPC client for invoices, payments and fee estimates, and the
worker that republishes lightningd plugin messages as domain events.
"""
