from pagespeed_watch.routers.webhook import router as webhook_router
