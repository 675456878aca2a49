#!/usr/bin/env python3
"""
DIAN Tax Calendar - Entry Point

Computes Colombian tax-filing obligations per client and runs the
daily deadline alert job.

Usage:
    python main.py calendar --classification JURIDICA --iva BIMESTRAL --nit 900123456-9
    python main.py upcoming --client c-001 --clients-file data/clients.json --days 15
    python main.py rules --year 2026 --schedule iva_bimestral
    python main.py alerts --clients-file data/clients.json --date 2026-03-13
    python main.py serve --port 8000
"""

from tax_calendar.cli import main

if __name__ == "__main__":
    main()
