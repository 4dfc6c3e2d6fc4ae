"""Find files by name across directory trees and ZIP archives."""
