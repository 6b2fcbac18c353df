# Services package init
"""
Notebox Backend — Services Layer
==================================

What:  Business logic between the routes (HTTP) and the repository/object store.
How:   Services are constructed once by `create_app()`, stored on `app.state`
       and injected into routes through notebox.dependencies. Each call gets
       the request's AsyncSession as an argument.

Service Inventory:
    - NoteService:        note CRUD, pin toggling, note deletion
    - AttachmentService:  upload/delete of attachments, blob cleanup
"""
