"""Rule-based organization planning, presentation and plan lifecycle."""
