"""Entry point: python -m activkiosk"""
from activkiosk.daemon import main

raise SystemExit(main())
