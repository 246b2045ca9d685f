"""
Route modules mounted by ``api.main.create_app``.
"""
