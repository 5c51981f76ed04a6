"""
Blueprint services: bulk importer, export, AI extraction
"""
