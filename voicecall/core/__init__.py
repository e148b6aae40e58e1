"""Call state, response validation and turn-taking."""
