"""
Function-call resolution pipeline.

Raw message text flows through ``intent_router`` (is this for us, is it
administrative), ``call_parser`` (is it already a call), the model bridge,
and finally ``action_executor``, which resolves references, checks
permissions and performs the Discord mutation. ``command_dispatcher`` wires
these steps together per message.
"""
