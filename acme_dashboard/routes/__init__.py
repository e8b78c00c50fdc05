"""Flask blueprint package for the Acme dashboard.

Blueprints are defined in the sibling modules and registered in
:func:`acme_dashboard.create_app`:

- ``auth_routes``: ``/login`` and ``/logout``
- ``dashboard_routes``: ``/`` and ``/dashboard``
- ``invoice_routes``: everything under ``/dashboard/invoices``
"""
