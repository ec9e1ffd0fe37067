from ptc_dashboard import __version__
