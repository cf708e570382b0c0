"""Command-line front end for wanx_client."""
