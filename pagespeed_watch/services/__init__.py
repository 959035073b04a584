from pagespeed_watch.services.pagespeed import PageSpeedClient, extract_score, get_pagespeed_client
from pagespeed_watch.services.auditor import run_audit, scheduled_audit_job
