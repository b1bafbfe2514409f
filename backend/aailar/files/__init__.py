"""File library for AAILAR.

Password-gated uploads sorted into categories, with listing, search,
download, inline preview and password-gated delete. Metadata is tracked in
DuckDB; bytes live in the upload directory. Completed uploads are announced
in the chat room.

Supported file types (configurable):
- Documents: pdf, xls, xlsx
- Images: jpeg, png, gif
"""
