"""
Label Print Service
===================

Print job dispatch and delivery pipeline for inventory labels.

Supports:
- ZPL labels pushed to raw TCP printers (port 9100)
- PDF labels submitted to IPP printers
- File persistence as the default/fallback destination

Usage:
    python -m label_print_service enqueue --entity-type item --ids 1 2 3

Components:
    LabelService       - Renders label payloads (ZPL, PDF, PNG)
    Drivers            - TCP-raw, IPP and File delivery
    PrintJobProcessor  - Job state machine and driver orchestration
    worker             - Background queue invoking the processor
"""

__version__ = '1.0.0'
__author__ = 'Label Print Service Contributors'
