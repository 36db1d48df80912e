"""
Write the built-in MO template to an XLSX file (templates/Template_MO.xlsx),
ready to be restyled in Excel and pointed to by mo.template_path.

Usage: python tools/build_template.py [output_path]
"""
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from core.default_template import build_template_workbook
from utils.config import DEFAULT_TEMPLATE_PATH


if __name__ == "__main__":
    out_path = sys.argv[1] if len(sys.argv) > 1 else DEFAULT_TEMPLATE_PATH
    try:
        os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
        build_template_workbook().save(out_path)
        print(f"Successfully created: {out_path}")
    except Exception as e:
        print(f"Error: {e}")
        sys.exit(1)
