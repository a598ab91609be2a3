"""
Example: Export a document library inventory to Excel
"""

import os
from library_exporter import SharePointAuth, SharePointSession, run_export
from library_exporter.utils import setup_logging, print_export_summary

def main():
    """Export file metadata of one library"""
    
    # Set up environment (you can also use .env file)
    site_url = os.getenv('SHAREPOINT_SITE_URL', 'https://company.sharepoint.com/sites/mysite')
    library = os.getenv('SHAREPOINT_LIBRARY', 'Documents')
    client_id = os.getenv('AZURE_CLIENT_ID')
    
    if not client_id:
        print("Please set AZURE_CLIENT_ID environment variable")
        return
    
    setup_logging("library_export.txt")
    
    # Sign-in opens the browser on connect
    session = SharePointSession(SharePointAuth(client_id=client_id))
    
    try:
        summary = run_export(session, site_url, library, "library_export.xlsx", page_size=5000)
        print_export_summary(summary, "library_export.xlsx")
    
    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
    except Exception as e:
        print(f"Error: {e}")

if __name__ == "__main__":
    main()
