PACKAGE_VERSION = '0.4.2'                          # version of the history package
PACKAGE_DATE = '2026-10-19T12:00:00.000000+13:00'  # official timestamp for the package
