"""
Services package - Business logic layer.

This package contains the freight coordinator. Every module operates on Django
models but is decoupled from the HTTP/WebSocket layer.

Modules:
    - dispatch: expanding-radius driver search (Dispatch Scheduler)
    - auction: bids and the job state machine (Auction Manager)
    - escrow: payment hold, dual confirmation and the sweep (Escrow Coordinator)
    - cancellation: fees, refunds and driver strikes (Cancellation Policy Engine)
    - config / exceptions / results: shared plumbing
"""
