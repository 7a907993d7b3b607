"""marketwatch: live market ticker cache."""
