# Root-level conftest: pytest puts this directory on sys.path so tests can
# import main and vitals_monitor from a plain checkout.
