"""
Riffsmith Core - generation session engine.

1. SESSION STORE (session_store.py)
   - One observable session: chat, current code, revisions
   - Optional JSON persistence (session_repository.py)

2. FRAME DECODER (frame_decoder.py)
   - bytes → ``data:`` lines → typed frames → accumulated text

3. ORCHESTRATOR (orchestrator.py)
   - One turn: request → stream → extract → apply → execute
   - Single in-flight guard; state machine in turn_state.py

4. STUDIO (studio.py)
   - Quick actions, recall, start fresh, reset history, play/stop

Main entrypoint: GenerationOrchestrator.generate()
"""
