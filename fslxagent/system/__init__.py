"""Windows host integration for fslxagent.

Modules:

runner : module
    CommandRunner protocol and the subprocess-backed implementation.
uninstall : module
    Installed-version lookup from the uninstall registry.
installer : module
    Unattended installer execution and exit-code policy.
network : module
    TCP reachability check.
credentials : module
    Credential Manager storage via cmdkey.
registry : module
    Profile configuration writes.
services : module
    Service restart.

Every module takes its host dependency (runner, registry accessor, entry
reader) as a parameter so tests run on any platform.
"""
