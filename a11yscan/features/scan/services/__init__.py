"""
Scan Services

Organized by responsibility, in the order a scan runs through them:

1. orchestration/ - Scan lifecycle
   - state_machine.py: pending -> running -> completed | failed, notifications
   - factory.py: builds the engine from settings

2. crawl/ - Bounded breadth-first traversal of one site
   - crawler.py: queue, visited set, page budget

3. browser/ - Headless Chrome session, one tab at a time
   - browser_service.py: navigation with network-idle wait, script evaluation

4. testing/ - axe-core run inside a loaded page
   - page_tester.py: violations and severity counts

5. discovery/ - Same-host link collection
   - link_extractor.py: normalization and de-duplication

6. scoring/ - Weighted 0-100 score

7. reports/ - PDF and CSV reports, all-or-nothing
   - coordinator.py, pdf_report.py, csv_report.py, storage.py

8. storage/ - Scan record persistence with local JSON fallback

9. notifications/ - Jinja2 emails sent over the life of a scan
"""
