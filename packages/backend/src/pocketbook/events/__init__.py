"""Domain events pushed to clients when expenses or categories change."""
