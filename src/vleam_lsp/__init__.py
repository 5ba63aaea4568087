"""
vleam language server proxy

Runs the Gleam language server behind a proxy that makes the
<script lang="gleam"> block of a Vue single-file component look like a
standalone Gleam module, so editors get diagnostics, completion,
go-to-definition and formatting inside .vue files.
"""

__version__ = "0.3.0"

# Import on demand to avoid import errors
def get_transformer():
    from vleam_lsp.transform import MessageTransformer
    return MessageTransformer

__all__ = ["get_transformer", "__version__"]
