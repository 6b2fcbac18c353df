# Repositories package init
"""
Notebox Backend — Repositories
================================

What:  SQL access for notes and attachments. Repositories return ORM objects,
       None, or affected-row counts; deciding what a missing row means is left
       to the services.
"""
